"""
Carrier override from manual inspection notes.

Inspection notes are the most reliable record of a device's physical lock
state. The carrier recorded at intake is replaced with UNLOCKED when the notes
say the device is unlocked, and devices whose notes describe a failure are
excluded from matching altogether.

Decision order (first rule that applies wins):
    1. Failure markers            -> excluded, terminal
    2. Samsung + unlock language  -> UNLOCKED   (major-3 recorded carrier only)
    3. Google + eSIM-lock language -> UNLOCKED  (major-3 recorded carrier only)
    4. Explicit lock language     -> recorded carrier stands
    5. Anything else              -> recorded carrier stands
"""

import re
from typing import Optional

from .models import CarrierOverrideDecision
from .normalizer import UNLOCKED, CarrierRuleTable, is_major_carrier, normalize_brand

# ---------------------------------------------------------------------------
# Note patterns (matched against upper-cased, whitespace-collapsed notes).
# FAIL is a plain substring: FAILED, FAILURE, FAILS and FAILING all exclude.
# ---------------------------------------------------------------------------
FAILURE_PATTERNS = (
    re.compile(r'FAIL'),
    re.compile(r'\bNO SIM MANAGER\b'),
    re.compile(r'\bOPENED\b'),
    re.compile(r'\bOPEN BACK\b'),
    re.compile(r'\bSCREEN POPPED UP\b'),
    re.compile(r'\bWI-?FI ISSUES?\b'),
)

# 'CARRIR' is a frequent misspelling in the inspection notes
UNLOCK_PATTERN = re.compile(r'\bUNLOCK(?:ED)?\b|\bCARRIR UNLOCK')
ESIM_LOCK_PATTERN = re.compile(r'\bE-?SIM LOCKED\b')
LOCK_PATTERN = re.compile(r'\b(?:CARRIER )?LOCKED\b')

REASON_FAILED = 'failed_device'
REASON_SAMSUNG_UNLOCK = 'samsung_unlocked_notes'
REASON_GOOGLE_ESIM = 'google_esim_locked_notes'
REASON_LOCKED = 'carrier_locked_notes'


def _clean_notes(notes) -> str:
    if notes is None:
        return ''
    return re.sub(r'\s+', ' ', str(notes).upper()).strip()


def is_failed_device(notes) -> bool:
    text = _clean_notes(notes)
    return bool(text) and any(p.search(text) for p in FAILURE_PATTERNS)


def resolve_carrier_override(
    notes,
    brand,
    recorded_carrier,
    rules: Optional[CarrierRuleTable] = None,
) -> CarrierOverrideDecision:
    """
    Decide the effective carrier of a device from its inspection notes.

    Args:
        notes: Free-text inspection notes (may be None)
        brand: Device brand, recorded or inferred from the model
        recorded_carrier: Carrier recorded at intake
        rules: Carrier pattern table (defaults to the built-in table)

    Returns:
        CarrierOverrideDecision. When ``is_excluded`` is set the device must
        never receive a match.

    Examples:
        ('CARRIER UNLOCKED', 'Samsung', 'AT&T') -> override to UNLOCKED
        ('CARRIR UNLOCK', 'Samsung', 'Verizon') -> override to UNLOCKED
        ('ESIM LOCKED', 'Google', 'T-Mobile')   -> override to UNLOCKED
        ('CARRIER UNLOCKED', 'Samsung', 'Cricket') -> no override (not major-3)
        ('FAILED FACE ID', 'Apple', 'AT&T')     -> excluded
    """
    recorded = '' if recorded_carrier is None else str(recorded_carrier).strip()
    text = _clean_notes(notes)
    no_override = CarrierOverrideDecision(
        should_override=False, effective_carrier=recorded, is_excluded=False,
        original_carrier=recorded,
    )
    if not text:
        return no_override

    if any(p.search(text) for p in FAILURE_PATTERNS):
        return CarrierOverrideDecision(
            should_override=False, effective_carrier=recorded, is_excluded=True,
            original_carrier=recorded, reason=REASON_FAILED,
        )

    brand_norm = normalize_brand(brand)
    major = is_major_carrier(recorded, rules)

    if brand_norm == 'samsung' and major and UNLOCK_PATTERN.search(text):
        return CarrierOverrideDecision(
            should_override=True, effective_carrier=UNLOCKED, is_excluded=False,
            original_carrier=recorded, reason=REASON_SAMSUNG_UNLOCK,
        )

    if brand_norm == 'google' and major and ESIM_LOCK_PATTERN.search(text):
        return CarrierOverrideDecision(
            should_override=True, effective_carrier=UNLOCKED, is_excluded=False,
            original_carrier=recorded, reason=REASON_GOOGLE_ESIM,
        )

    if LOCK_PATTERN.search(text):
        return CarrierOverrideDecision(
            should_override=False, effective_carrier=recorded, is_excluded=False,
            original_carrier=recorded, reason=REASON_LOCKED,
        )

    return no_override
