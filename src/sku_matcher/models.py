"""
Value types passed between the resolver stages.

Every instance is created for a single resolution call and discarded once the
caller has the MatchResult. Nothing here is cached or persisted.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
METHOD_EXACT = "exact"
METHOD_FUZZY = "fuzzy"
METHOD_RULE_BASED = "rule_based"
METHOD_PARTIAL = "partial"
METHOD_FAILED_DEVICE = "failed_device"

TIER_EXACT = "exact"
TIER_BRAND_MODEL = "brand_model"
TIER_BRAND_CAPACITY = "brand_capacity"
TIER_BRAND_ONLY = "brand_only"
TIER_ORDER = (TIER_EXACT, TIER_BRAND_MODEL, TIER_BRAND_CAPACITY, TIER_BRAND_ONLY)

PRODUCT_PHONE = "phone"
PRODUCT_TABLET = "tablet"
PRODUCT_WATCH = "watch"
PRODUCT_LAPTOP = "laptop"

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DeviceAttributes:
    """Raw device attributes as recorded at intake."""
    model: str
    brand: Optional[str] = None
    capacity: Optional[str] = None
    color: Optional[str] = None
    carrier: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ParsedSkuFields:
    """Structured view of a canonical SKU code.

    Attributes:
        brand: Inferred brand ('Samsung', 'Apple', 'Google' or 'Unknown')
        model: Model tokens joined with '-' (e.g. 'S22-ULTRA')
        capacity: '<n>GB' / '<n>TB' or ''
        color: Canonical color token, 'UNKNOWN', or ''
        carrier: Canonical carrier token, or '' when the SKU is unlocked class
        grade: Condition suffix (VG, ACCEPTABLE, ...) or ''
        connectivity: WIFI / 4G / 5G / CELLULAR / LTE for tablets and watches
        size: Watch case size in mm ('47') or ''
        product_type: phone / tablet / watch / laptop
        is_stub: True for vendor-opaque codes that could not be parsed
    """
    brand: str
    model: str
    capacity: str = ''
    color: str = ''
    carrier: str = ''
    grade: str = ''
    connectivity: str = ''
    size: str = ''
    product_type: str = PRODUCT_PHONE
    is_stub: bool = False

    @property
    def has_carrier_field(self) -> bool:
        return bool(self.carrier)

    @property
    def is_unlocked_class(self) -> bool:
        return not self.carrier or self.carrier == "UNLOCKED"

    @property
    def is_variant(self) -> bool:
        return bool(self.grade)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class CarrierOverrideDecision:
    should_override: bool
    effective_carrier: str
    is_excluded: bool
    original_carrier: str = ''
    reason: str = ''

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class TierSpec:
    """Filters for one catalog query.

    ``None`` means the attribute is not constrained in this tier.
    """
    tier: str
    product_type: str
    unlocked: bool
    brand: Optional[str] = None
    model_key: Optional[str] = None
    capacity: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class RawSkuRow:
    sku_code: str
    is_unlocked: bool
    source_tab: str = ''


@dataclass(frozen=True)
class MatchCandidate:
    sku_code: str
    parsed_fields: ParsedSkuFields
    raw_score: float
    adjusted_score: float
    carrier_score: float = 0.0
    tier: str = ''
    source_tab: str = ''


@dataclass(frozen=True)
class MatchResult:
    """Outcome of resolving one device.

    ``sku_code`` is None only for ``failed_device`` results.
    """
    sku_code: Optional[str]
    match_score: float
    match_method: str
    parsed_fields: Optional[ParsedSkuFields] = None
    carrier_override: Optional[CarrierOverrideDecision] = None
    tier: str = ''
    source_tab: str = ''

    def to_dict(self) -> Dict[str, object]:
        return {
            'sku_matched': self.sku_code or '',
            'match_score': self.match_score,
            'match_method': self.match_method,
            'match_tier': self.tier,
            'source_tab': self.source_tab,
            'carrier_override': (
                self.carrier_override.effective_carrier
                if self.carrier_override and self.carrier_override.should_override else ''
            ),
            'match_notes': self.carrier_override.reason if self.carrier_override else '',
        }


@dataclass
class TierTrace:
    """Diagnostic record of one tier attempt (see resolver.explain_resolution)."""
    tier: str
    skipped: bool = False
    candidates: List[Dict[str, object]] = field(default_factory=list)
    accepted: int = 0
