"""
Text, color, carrier and capacity normalization.

Every comparison the scorer makes goes through these functions, so both sides
of a comparison (device attributes and parsed catalog SKUs) land in the same
token space:

    - normalize_text():     'Galaxy Z-Fold3 ' -> 'galaxyzfold3'
    - normalize_color():    'Phantom Black'   -> 'BLK', 'PHA' -> 'UNKNOWN'
    - normalize_carrier():  'AT&T'            -> 'ATT', 'Verizon' -> 'VRZ'
    - normalize_capacity(): '256 GB' / '256'  -> '256GB'
    - model_key():          'Galaxy Z Fold3 Duos' -> 'fold3'

Lookup tables are built once at import and exposed read-only.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
UNKNOWN_COLOR = 'UNKNOWN'
UNLOCKED = 'UNLOCKED'

# Condition / grade suffix tokens that can trail a SKU code (never a carrier)
GRADE_SUFFIXES: FrozenSet[str] = frozenset({
    'VG', 'ACCEPTABLE', 'LIKE', 'NEW', 'EXCELLENT', 'GOOD', 'FAIR',
})

# The three national carriers whose devices are eligible for unlock overrides
MAJOR_CARRIERS: FrozenSet[str] = frozenset({'ATT', 'TMO', 'VRZ'})

_UNKNOWN_VALUES = frozenset({'', 'unknown', 'na', 'none', 'nan', 'null'})


# ---------------------------------------------------------------------------
# Generic text
# ---------------------------------------------------------------------------

@lru_cache(maxsize=50000)
def _normalize_text_cached(text: str) -> str:
    return re.sub(r'[^a-z0-9]', '', text.lower())


def normalize_text(text) -> str:
    """
    Lower-case and drop every non-alphanumeric character (whitespace included).

    Examples:
        'Galaxy Z Fold3'  -> 'galaxyzfold3'
        'AT&T'            -> 'att'
        None / ''         -> ''
    """
    if text is None:
        return ''
    return _normalize_text_cached(str(text))


def is_unknown(value) -> bool:
    """True for absent values and placeholders like 'Unknown', 'N/A', 'nan'."""
    return normalize_text(value) in _UNKNOWN_VALUES


def _compact_upper(text) -> str:
    if text is None:
        return ''
    return re.sub(r'[^A-Z0-9]', '', str(text).upper())


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------

_COLOR_ALIASES: Mapping[str, str] = MappingProxyType({
    'BLACK': 'BLK', 'BLK': 'BLK', 'BK': 'BLK',
    'WHITE': 'WHT', 'WHT': 'WHT', 'WH': 'WHT',
    'BLUE': 'BLU', 'BLU': 'BLU',
    'RED': 'RED',
    'GREEN': 'GRN', 'GRN': 'GRN',
    'PURPLE': 'PUR', 'PUR': 'PUR', 'PRP': 'PUR', 'VIOLET': 'PUR', 'LAVENDER': 'PUR',
    'PINK': 'PNK', 'PNK': 'PNK',
    'GOLD': 'GLD', 'GLD': 'GLD',
    'SILVER': 'SLV', 'SLV': 'SLV', 'SLVR': 'SLV',
    'GRAY': 'GRY', 'GREY': 'GRY', 'GRY': 'GRY', 'GRAPHITE': 'GRY',
    'HAZE': 'HAZ', 'HAZ': 'HAZ',
})

# Full color words, checked as suffixes of undelimited names ('MIDNIGHTBLACK')
_COLOR_WORDS: Tuple[str, ...] = tuple(
    sorted((name for name in _COLOR_ALIASES if len(name) >= 4), key=len, reverse=True)
)

# Phantom-series colors that can be resolved from a trailing color word
_PHANTOM_TOKENS = frozenset({'BLK', 'GRN', 'BLU', 'WHT', 'RED'})


@lru_cache(maxsize=10000)
def _normalize_color_cached(color: str) -> str:
    upper = color.upper()
    compact = re.sub(r'[^A-Z0-9]', '', upper)
    if not compact:
        return ''

    # Phantom colors: 'PHANTOM' alone, or any truncation of it, names no color
    if 'PHANTOM' in compact or (compact.startswith('PHA') and 'PHANTOM'.startswith(compact)):
        rest = compact.split('PHANTOM', 1)[1] if 'PHANTOM' in compact else ''
        token = _COLOR_ALIASES.get(rest, '')
        return token if token in _PHANTOM_TOKENS else UNKNOWN_COLOR

    if compact in _COLOR_ALIASES:
        return _COLOR_ALIASES[compact]

    # Multi-word names resolve from their last known color word
    for word in reversed(re.findall(r'[A-Z]+', upper)):
        if word in _COLOR_ALIASES:
            return _COLOR_ALIASES[word]

    for name in _COLOR_WORDS:
        if compact.endswith(name):
            return _COLOR_ALIASES[name]

    return compact[:10]


def normalize_color(color) -> str:
    """
    Map a color name or abbreviation to its canonical token.

    Ambiguous input resolves to 'UNKNOWN' instead of a guess.

    Examples:
        'Black' / 'BLK'     -> 'BLK'
        'Phantom Black'     -> 'BLK'
        'phantom green'     -> 'GRN'
        'PHA' / 'PHANTOM'   -> 'UNKNOWN'
        'Phantom Silver'    -> 'UNKNOWN'
        'Midnight Black'    -> 'BLK'
        'Bronze'            -> 'BRONZE'   (not in the table, passed through)
    """
    if color is None or is_unknown(color):
        return ''
    return _normalize_color_cached(str(color))


# ---------------------------------------------------------------------------
# Carrier
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CarrierRule:
    """One carrier spelling family: any pattern maps to ``target``."""
    patterns: Tuple[str, ...]
    target: str
    priority: int = 0


class CarrierRuleTable:
    """
    Priority-ordered carrier pattern table.

    A carrier string matches a rule when its compact upper-case form contains
    the compact form of one of the rule's patterns. Rules are tried from the
    highest priority down; the first hit wins. Unmatched carriers pass through
    in compact upper-case form.

    The table is immutable once built. ``from_rows`` accepts the row shape of
    an external rule store: ``{'carrier_pattern': 'AT&T|ATT', 'target_sku':
    'ATT', 'priority': 10}``.
    """

    def __init__(self, rules: Iterable[CarrierRule]):
        ordered = sorted(rules, key=lambda r: r.priority, reverse=True)
        self._rules: Tuple[Tuple[Tuple[str, ...], str], ...] = tuple(
            (tuple(_compact_upper(p) for p in rule.patterns if _compact_upper(p)),
             _compact_upper(rule.target))
            for rule in ordered
        )

    @classmethod
    def from_rows(
        cls, rows: Iterable[Mapping[str, object]], base: Iterable[CarrierRule] = (),
    ) -> 'CarrierRuleTable':
        """Build a table from rule-store rows, layered over ``base`` rules."""
        rules = list(base)
        for row in rows:
            pattern = str(row.get('carrier_pattern') or '')
            target = str(row.get('target_sku') or '')
            if not pattern or not target:
                continue
            rules.append(CarrierRule(
                patterns=tuple(p.strip() for p in pattern.split('|') if p.strip()),
                target=target,
                priority=int(row.get('priority') or 0),
            ))
        return cls(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def normalize(self, carrier) -> str:
        compact = _compact_upper(carrier)
        if not compact or compact.lower() in _UNKNOWN_VALUES:
            return ''
        for patterns, target in self._rules:
            for pattern in patterns:
                if pattern in compact:
                    return target
        return compact


DEFAULT_RULES: Tuple[CarrierRule, ...] = (
    CarrierRule(('UNLOCKED', 'UNL', 'FACTORY UNLOCKED'), UNLOCKED, priority=20),
    CarrierRule(('AT&T', 'ATT'), 'ATT', priority=10),
    CarrierRule(('T-MOBILE', 'TMOBILE', 'TMO', 'TMB'), 'TMO', priority=10),
    CarrierRule(('VERIZON', 'VZW', 'VRZ', 'VERZ'), 'VRZ', priority=10),
)

DEFAULT_CARRIER_RULES = CarrierRuleTable(DEFAULT_RULES)


def normalize_carrier(carrier, rules: Optional[CarrierRuleTable] = None) -> str:
    """
    Canonical carrier token for a recorded carrier string.

    Examples:
        'AT&T' / 'att'            -> 'ATT'
        'T-Mobile' / 'TMO'        -> 'TMO'
        'Verizon Wireless'        -> 'VRZ'
        'Unlocked' / 'UNL'        -> 'UNLOCKED'
        'US Cellular'             -> 'USCELLULAR'
        None / ''                 -> ''
    """
    return (rules or DEFAULT_CARRIER_RULES).normalize(carrier)


def is_unlocked_carrier(carrier, rules: Optional[CarrierRuleTable] = None) -> bool:
    """A device with no recorded carrier is unlocked class."""
    return normalize_carrier(carrier, rules) in ('', UNLOCKED)


def is_major_carrier(carrier, rules: Optional[CarrierRuleTable] = None) -> bool:
    return normalize_carrier(carrier, rules) in MAJOR_CARRIERS


# ---------------------------------------------------------------------------
# Synonyms
# ---------------------------------------------------------------------------

def _build_synonym_index() -> Mapping[str, FrozenSet[str]]:
    groups: Dict[str, set] = {}
    for alias, token in _COLOR_ALIASES.items():
        groups.setdefault(token, {token}).add(alias)
    groups_list = list(groups.values()) + [
        {'ATT', 'ATANDT'},
        {'TMO', 'TMOBILE', 'TMB'},
        {'VRZ', 'VZW', 'VERIZON', 'VERZ'},
        {'UNLOCKED', 'UNL'},
        {'1TB', '1024GB'},
        {'2TB', '2048GB'},
        {'SAMSUNG', 'GALAXY'},
        {'APPLE', 'IPHONE'},
        {'GOOGLE', 'PIXEL'},
    ]
    index: Dict[str, FrozenSet[str]] = {}
    for group in groups_list:
        frozen = frozenset(group)
        for member in group:
            index[member] = frozen
    return MappingProxyType(index)


_SYNONYMS = _build_synonym_index()


def are_synonyms(a, b) -> bool:
    """True when two different spellings belong to the same synonym group ('BLK'/'BLACK')."""
    ca, cb = _compact_upper(a), _compact_upper(b)
    if not ca or not cb or ca == cb:
        return False
    group = _SYNONYMS.get(ca)
    return bool(group) and cb in group


# ---------------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------------

def normalize_capacity(capacity) -> str:
    """
    Canonical capacity: '<n>GB' or '<n>TB'. Bare integers are gigabytes.

    Examples:
        '256GB' / '256 gb' / '256' -> '256GB'
        '1TB' / '1024GB'           -> '1TB'
        'N/A' / None               -> ''
    """
    if capacity is None or is_unknown(capacity):
        return ''
    compact = re.sub(r'\s+', '', str(capacity)).upper()
    match = re.match(r'^(\d+)(GB|G|TB|T)?$', compact)
    if not match:
        return compact
    num, unit = int(match.group(1)), match.group(2) or 'GB'
    if unit.startswith('T'):
        return f'{num}TB'
    if num and num % 1024 == 0:
        return f'{num // 1024}TB'
    return f'{num}GB'


# ---------------------------------------------------------------------------
# Brand / model
# ---------------------------------------------------------------------------

BRAND_ALIASES: Mapping[str, str] = MappingProxyType({
    'samsung': 'samsung', 'samsung electronics': 'samsung', 'galaxy': 'samsung',
    'apple': 'apple', 'apple inc': 'apple', 'iphone': 'apple', 'ipad': 'apple',
    'google': 'google', 'google llc': 'google', 'pixel': 'google',
})


def normalize_brand(brand) -> str:
    """
    Lower-case canonical brand name.

    Examples:
        'Samsung Electronics' -> 'samsung'
        'GALAXY'              -> 'samsung'
        'Motorola'            -> 'motorola'
        None / 'Unknown'      -> ''
    """
    if brand is None or is_unknown(brand):
        return ''
    b = re.sub(r'\s+', ' ', str(brand).strip().lower())
    b = re.sub(r'[.,]', '', b)
    if b in BRAND_ALIASES:
        return BRAND_ALIASES[b]
    first = b.split(' ')[0]
    return BRAND_ALIASES.get(first, first)


def infer_brand_from_model(model) -> str:
    """
    Infer a display brand from model text or a SKU model field.

    Returns 'Samsung', 'Apple', 'Google', or '' when no keyword matches.

    Examples:
        'Galaxy Z Fold3' / 'FOLD3' / 'ZFLIP4' -> 'Samsung'
        'iPhone 14 Pro' / 'IPAD-AIR' / 'A15'  -> 'Apple'
        'Pixel 7'                             -> 'Google'
    """
    compact = _compact_upper(model)
    if not compact:
        return ''
    if 'GALAXY' in compact or 'FOLD' in compact or 'FLIP' in compact:
        return 'Samsung'
    if compact.startswith('IP') or 'IPHONE' in compact or 'IPAD' in compact or re.match(r'^A\d', compact):
        return 'Apple'
    if 'PIXEL' in compact:
        return 'Google'
    return ''


_MODEL_NOISE_WORDS = frozenset({
    'samsung', 'apple', 'google', 'galaxy', 'z',
    'duos', 'dual', 'sim', 'ds', '5g', '4g', 'lte', 'unlocked',
    'tab', 'tablet', 'watch',
})


@lru_cache(maxsize=20000)
def _model_key_cached(model: str) -> str:
    words = re.findall(r'[a-z0-9]+', model.lower())
    kept = []
    for word in words:
        if word in _MODEL_NOISE_WORDS:
            continue
        if re.match(r'^\d+(?:gb|tb|mm)$', word):
            continue
        word = re.sub(r'^z(?=fold|flip)', '', word)
        word = re.sub(r'^(?:tab|watch)(?=[a-z0-9])', '', word)
        kept.append(word)
    return ''.join(kept)


def model_key(model) -> str:
    """
    Comparable model key with brand, series and connectivity words removed.

    Examples:
        'Galaxy Z Fold3 Duos'  -> 'fold3'
        'ZFLIP4'               -> 'flip4'
        'Galaxy S22 Ultra 5G'  -> 's22ultra'
        'S22-ULTRA'            -> 's22ultra'
        'Galaxy Tab S8 Ultra'  -> 's8ultra'
        'iPhone 14 Pro'        -> 'iphone14pro'
    """
    if model is None:
        return ''
    return _model_key_cached(str(model))
