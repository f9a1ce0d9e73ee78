"""
Similarity scoring of a device against one parsed catalog SKU.

The score is a weighted sum of five field sub-scores followed by three
structural adjustments:

    brand 10% + model 20% + capacity 15% + color 10% + carrier 45%
      -> model penalty       (a wrong model cannot hide behind a good carrier)
      -> field-count factor  (3-field vs 4-field SKU formats)
      -> base-SKU nudge      (+0.001 for SKUs without a grade suffix)

Every intermediate value is clamped to [0, 1].
"""

from typing import Dict, Optional

from rapidfuzz.distance import Levenshtein

from . import config
from .models import DeviceAttributes, ParsedSkuFields
from .normalizer import (
    UNKNOWN_COLOR,
    UNLOCKED,
    CarrierRuleTable,
    are_synonyms,
    is_unknown,
    model_key,
    normalize_brand,
    normalize_capacity,
    normalize_carrier,
    normalize_color,
    normalize_text,
)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ---------------------------------------------------------------------------
# Field comparisons
# ---------------------------------------------------------------------------

def compare_field(a, b) -> float:
    """
    Generic field comparison.

    Examples:
        ('BLK', 'blk')        -> 1.0   exact (case-insensitive)
        ('s22', 's22ultra')   -> 0.8   substring either direction
        ('', 'samsung')       -> 0.5   one side unknown
        ('BLK', 'BLACK')      -> 0.6   synonym table
        ('BLK', 'WHT')        -> 0.0
    """
    if is_unknown(a) or is_unknown(b):
        return config.FIELD_UNKNOWN
    na, nb = normalize_text(a), normalize_text(b)
    if na == nb:
        return config.FIELD_EXACT
    if na in nb or nb in na:
        return config.FIELD_SUBSTRING
    if are_synonyms(a, b):
        return config.FIELD_SYNONYM
    return 0.0


def score_brand(device_brand, candidate_brand) -> float:
    return compare_field(normalize_brand(device_brand), normalize_brand(candidate_brand))


def score_model(device_model, candidate_model) -> float:
    """
    Model keys are compared with compare_field. Keys that share nothing get
    graded edit-distance credit so the model penalty can tell a near miss
    ('s22ultra' vs 's23ultra') from an unrelated device.
    """
    if is_unknown(device_model) or is_unknown(candidate_model):
        return config.FIELD_UNKNOWN
    dk, ck = model_key(device_model), model_key(candidate_model)
    base = compare_field(dk, ck)
    if base > 0 or not dk or not ck:
        return base
    return Levenshtein.normalized_similarity(dk, ck) * config.MODEL_FUZZY_SCALE


def score_capacity(device_capacity, candidate_capacity) -> float:
    return compare_field(normalize_capacity(device_capacity), normalize_capacity(candidate_capacity))


def score_color(device_color, candidate_color) -> float:
    """An ambiguous color on either side ('PHA' -> UNKNOWN) is a mismatch."""
    dc = normalize_color(device_color)
    cc = candidate_color if candidate_color == UNKNOWN_COLOR else normalize_color(candidate_color)
    if dc == UNKNOWN_COLOR or cc == UNKNOWN_COLOR:
        return 0.0
    return compare_field(dc, cc)


def score_carrier(
    device_carrier,
    candidate: ParsedSkuFields,
    device_is_unlocked: bool,
    rules: Optional[CarrierRuleTable] = None,
) -> float:
    """
    Carrier-aware sub-score.

    Unlocked device:
        candidate without carrier / with UNLOCKED  -> 1.0
        carrier-bearing candidate                  -> 0.1
    Carrier-bound device:
        candidate without carrier / with UNLOCKED  -> 0.1
        same carrier -> 1.0, synonym -> 0.8, overlap -> 0.6, other -> 0.2
    """
    if candidate.is_stub:
        return config.CARRIER_CLASS_MISMATCH
    if device_is_unlocked:
        return config.CARRIER_MATCH if candidate.is_unlocked_class else config.CARRIER_CLASS_MISMATCH
    if candidate.is_unlocked_class:
        return config.CARRIER_CLASS_MISMATCH

    device_token = normalize_carrier(device_carrier, rules)
    candidate_token = normalize_carrier(candidate.carrier, rules)
    if not device_token or device_token == UNLOCKED:
        return config.CARRIER_CLASS_MISMATCH
    if device_token == candidate_token:
        return config.CARRIER_MATCH
    if are_synonyms(device_token, candidate_token):
        return config.CARRIER_SYNONYM
    if candidate_token in device_token or device_token in candidate_token:
        return config.CARRIER_OVERLAP
    return config.CARRIER_OTHER


# ---------------------------------------------------------------------------
# Combined score
# ---------------------------------------------------------------------------

def score_breakdown(
    device: DeviceAttributes,
    candidate: ParsedSkuFields,
    device_is_unlocked: bool,
    rules: Optional[CarrierRuleTable] = None,
) -> Dict[str, float]:
    """
    Score a candidate and return every sub-score and adjustment step.

    Keys: brand, model, capacity, color, carrier, weighted, model_penalty,
    field_count, final. ``final`` is what score() returns.
    """
    if candidate.is_stub:
        brand = model = capacity = color = config.FIELD_UNKNOWN
    else:
        brand = score_brand(device.brand, candidate.brand)
        model = score_model(device.model, candidate.model)
        capacity = score_capacity(device.capacity, candidate.capacity)
        color = score_color(device.color, candidate.color)
    carrier = score_carrier(device.carrier, candidate, device_is_unlocked, rules)

    weighted = _clamp(
        brand * config.WEIGHT_BRAND
        + model * config.WEIGHT_MODEL
        + capacity * config.WEIGHT_CAPACITY
        + color * config.WEIGHT_COLOR
        + carrier * config.WEIGHT_CARRIER
    )

    # 1. Model penalty
    total = weighted
    if model < config.MODEL_SEVERE_THRESHOLD:
        total -= total * config.MODEL_SEVERE_PENALTY * (1 - model)
    elif model < config.MODEL_WEAK_THRESHOLD:
        total -= total * config.MODEL_WEAK_PENALTY * (1 - model)
    after_penalty = total = _clamp(total)

    # 2. Field-count normalization
    if candidate.has_carrier_field:
        if carrier >= config.FOUR_FIELD_STRONG_CARRIER:
            total *= 1 + config.FOUR_FIELD_STRONG_BONUS
        elif carrier >= config.FOUR_FIELD_GOOD_CARRIER:
            total *= 1 + config.FOUR_FIELD_GOOD_BONUS
        elif carrier < config.FOUR_FIELD_WEAK_CARRIER:
            total *= 1 - config.FOUR_FIELD_WEAK_PENALTY
    elif device_is_unlocked:
        if carrier >= config.THREE_FIELD_STRONG_CARRIER:
            total *= 1 + config.THREE_FIELD_UNLOCKED_BONUS
    else:
        total *= 1 - config.THREE_FIELD_CARRIER_BOUND_PENALTY
    after_field_count = total = _clamp(total)

    # 3. Base-SKU nudge
    if not candidate.is_variant:
        total += config.BASE_SKU_BONUS

    return {
        'brand': brand,
        'model': model,
        'capacity': capacity,
        'color': color,
        'carrier': carrier,
        'weighted': weighted,
        'model_penalty': after_penalty,
        'field_count': after_field_count,
        'final': _clamp(total),
    }


def score(
    device: DeviceAttributes,
    candidate: ParsedSkuFields,
    device_is_unlocked: bool,
    rules: Optional[CarrierRuleTable] = None,
) -> float:
    """Similarity of ``device`` to ``candidate`` in [0, 1]."""
    return score_breakdown(device, candidate, device_is_unlocked, rules)['final']
