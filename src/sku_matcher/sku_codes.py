"""
SKU code parsing, product-type classification and intake SKU generation.

Catalog SKU layout (dash-separated, upper-case):

    [CATEGORY-]MODEL[-VARIANT...]-CAPACITY-COLOR[-CARRIER][-GRADE]

    FOLD3-512-BLK                  phone, unlocked class
    FOLD3-256-BLK-ATT-VG           phone, AT&T, grade VG
    FOLD3-512-BLK-ACCEPTABLE       phone, unlocked class, grade ACCEPTABLE
    S22-ULTRA-512GB-BLACK-AT&T     phone, multi-token model
    TAB-S8-ULTRA-128-BLK-WIFI      tablet, WIFI is connectivity (not a carrier)
    WATCH-6-CLASSIC-47-4G-BLK      watch, 47 is the case size

Parsing never raises: codes that cannot be decomposed (internal vendor ids,
placeholders) come back as a low-confidence stub with every field 'Unknown'.
"""

import logging
import re
from typing import List

from .models import (
    PRODUCT_LAPTOP, PRODUCT_PHONE, PRODUCT_TABLET, PRODUCT_WATCH, UNKNOWN,
    DeviceAttributes, ParsedSkuFields,
)
from .normalizer import (
    GRADE_SUFFIXES, UNKNOWN_COLOR, infer_brand_from_model, is_unlocked_carrier,
    model_key, normalize_capacity, normalize_carrier, normalize_color,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Token tables
# ---------------------------------------------------------------------------

# Leading category tokens that are not part of the model
_CATEGORY_PREFIXES = {
    'TAB': PRODUCT_TABLET,
    'WATCH': PRODUCT_WATCH,
    'LAPTOP': PRODUCT_LAPTOP,
    'DESKTOP': PRODUCT_LAPTOP,
    '2IN1': PRODUCT_LAPTOP,
}
_SKU_PREFIX_FOR_TYPE = {
    PRODUCT_TABLET: 'TAB',
    PRODUCT_WATCH: 'WATCH',
    PRODUCT_LAPTOP: 'LAPTOP',
}

# Words that extend the model ('S22-ULTRA', 'IPAD-AIR', '6-CLASSIC')
MODEL_VARIANT_TOKENS = frozenset({
    'ULTRA', 'PRO', 'MAX', 'PLUS', 'MINI', 'AIR', 'CLASSIC', 'LITE', 'FE', 'SE', 'XL',
})

CONNECTIVITY_TOKENS = frozenset({'WIFI', '4G', '5G', 'CELLULAR', 'LTE', 'GPS'})

_LAPTOP_KEYWORDS = frozenset({'LAPTOP', 'MACBOOK', 'DESKTOP', 'CHROMEBOOK', '2IN1'})

# Internal ids and placeholders that carry no catalog attributes
_OPAQUE_PATTERNS = (
    re.compile(r'^\d+$'),
    re.compile(r'^(?:TEST|UNKNOWN|PLACEHOLDER|MATCHED|REVIEW)-'),
    re.compile(r'^[A-Z]{0,4}\d{6,}[A-Z]*$'),
)

_CAPACITY_TOKEN = re.compile(r'^\d+(?:GB|TB)$')
_WATCH_SIZE_TOKEN = re.compile(r'^(3[89]|4\d|5[0-5])(?:MM)?$')
_CANONICAL_COLORS = frozenset({
    'BLK', 'WHT', 'BLU', 'RED', 'GRN', 'PUR', 'PNK', 'GLD', 'SLV', 'GRY', 'HAZ', UNKNOWN_COLOR,
})


# ---------------------------------------------------------------------------
# Product type
# ---------------------------------------------------------------------------

def get_product_type(text) -> str:
    """
    Classify a SKU code or device model text as phone / tablet / watch / laptop.

    Tablet keywords are checked first, then watch, then laptop; anything else
    is a phone. Keywords are matched on whole tokens so 'STABLE' is not a tab.

    Examples:
        'TAB-S7-PLUS-128-BLK'    -> 'tablet'
        'Galaxy Tab S8'          -> 'tablet'
        'iPad Air'               -> 'tablet'
        'WATCH-6-CLASSIC-47-BLK' -> 'watch'
        'LAPTOP-MACBOOK-512'     -> 'laptop'
        'FOLD3-256-BLK'          -> 'phone'
    """
    if not isinstance(text, str) or not text.strip():
        return PRODUCT_PHONE
    tokens = [t for t in re.split(r'[^A-Z0-9]+', text.upper()) if t]

    if any(t in ('TAB', 'TABLET') or t.startswith('IPAD') or re.match(r'^TAB[A-Z]?\d', t)
           for t in tokens):
        return PRODUCT_TABLET
    if any(t.startswith('WATCH') for t in tokens):
        return PRODUCT_WATCH
    if any(t in _LAPTOP_KEYWORDS or t.startswith('MACBOOK') for t in tokens):
        return PRODUCT_LAPTOP
    return PRODUCT_PHONE


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _stub(product_type: str = PRODUCT_PHONE) -> ParsedSkuFields:
    return ParsedSkuFields(
        brand=UNKNOWN, model=UNKNOWN, capacity=UNKNOWN, color=UNKNOWN, carrier=UNKNOWN,
        product_type=product_type, is_stub=True,
    )


def is_vendor_opaque(code: str) -> bool:
    upper = code.strip().upper()
    return any(p.match(upper) for p in _OPAQUE_PATTERNS)


def _is_capacity_token(token: str) -> bool:
    return bool(_CAPACITY_TOKEN.match(token)) or token.isdigit()


def _color_token(token: str) -> str:
    if token == UNKNOWN_COLOR:
        return UNKNOWN_COLOR
    return normalize_color(token)


def _continues_model(token: str, product_type: str) -> bool:
    if token in MODEL_VARIANT_TOKENS:
        return True
    if product_type == PRODUCT_PHONE:
        return False
    # Tablets, watches and laptops often carry multi-token models
    # ('GALAXY-S8', 'DELL-XPS', 'APL-S10'); stop at the first attribute token
    if _is_capacity_token(token) or token in CONNECTIVITY_TOKENS or token in GRADE_SUFFIXES:
        return False
    if product_type == PRODUCT_WATCH and _WATCH_SIZE_TOKEN.match(token):
        return False
    return _color_token(token) not in _CANONICAL_COLORS


def parse_sku_code(code) -> ParsedSkuFields:
    """
    Decompose a canonical SKU code into structured fields.

    Field rules:
        - An optional category prefix (TAB, WATCH, LAPTOP, DESKTOP, 2IN1) is dropped.
        - Field 1 is the model, extended by variant words (ULTRA, PRO, ...).
        - The next field is capacity when it is GB/TB or a bare integer
          (bare integers are GB). On watches a 38-55 integer is the case size.
        - The next field is the color, passed through normalize_color().
        - Trailing fields: grade suffixes (VG, ACCEPTABLE, LIKE, NEW, ...)
          are the grade, connectivity tokens are connectivity, and the first
          remaining token is the carrier. No carrier means unlocked class.

    Vendor-opaque codes (all digits, TEST-/UNKNOWN- placeholders, long
    internal ids) return a stub with every field 'Unknown'.

    Examples:
        'FOLD3-256-BLK-ATT-VG'     -> model FOLD3, 256GB, BLK, carrier ATT, grade VG
        'FOLD3-512-BLK-ACCEPTABLE' -> model FOLD3, 512GB, BLK, no carrier, grade ACCEPTABLE
        'S22-ULTRA-512GB-BLACK-AT&T' -> model S22-ULTRA, 512GB, BLK, carrier ATT
        '123456789'                -> stub
    """
    if not isinstance(code, str) or not code.strip():
        return _stub()
    upper = code.strip().upper()
    if is_vendor_opaque(upper):
        return _stub(get_product_type(upper))
    try:
        return _parse_sku_code_inner(upper)
    except (ValueError, IndexError) as exc:
        logger.debug("Unparseable SKU code %r: %s", code, exc)
        return _stub(get_product_type(upper))


def _parse_sku_code_inner(upper: str) -> ParsedSkuFields:
    """Inner implementation of parse_sku_code (wrapped by the stub fallback)."""
    # 'T-MOBILE' would otherwise split into two tokens
    upper = upper.replace('T-MOBILE', 'TMOBILE')
    parts = [p.strip() for p in upper.split('-') if p.strip()]
    product_type = get_product_type(upper)

    if len(parts) > 1 and parts[0] in _CATEGORY_PREFIXES:
        product_type = _CATEGORY_PREFIXES[parts[0]]
        parts = parts[1:]

    model_parts = [parts[0]]
    i = 1
    while i < len(parts) and _continues_model(parts[i], product_type):
        model_parts.append(parts[i])
        i += 1
    model = '-'.join(model_parts)
    brand = infer_brand_from_model(model) or UNKNOWN

    if product_type == PRODUCT_PHONE:
        capacity, color, carrier, grades, connectivity, size = _parse_phone_fields(parts[i:])
    else:
        capacity, color, carrier, grades, connectivity, size = _parse_device_fields(parts[i:], product_type)

    return ParsedSkuFields(
        brand=brand,
        model=model,
        capacity=capacity,
        color=color,
        carrier=carrier,
        grade='-'.join(grades),
        connectivity=connectivity,
        size=size,
        product_type=product_type,
    )


def _parse_phone_fields(rest: List[str]):
    """Positional parse of the fields after the model of a phone SKU."""
    capacity = color = carrier = ''
    grades: List[str] = []
    connectivity = next((t for t in rest if t in CONNECTIVITY_TOKENS), '')
    rest = [t for t in rest if t not in CONNECTIVITY_TOKENS]

    pos = 0
    if pos < len(rest) and _is_capacity_token(rest[pos]):
        capacity = normalize_capacity(rest[pos])
        pos += 1
    if pos < len(rest) and rest[pos] not in GRADE_SUFFIXES:
        color = _color_token(rest[pos])
        pos += 1
    for token in rest[pos:]:
        if token in GRADE_SUFFIXES:
            grades.append(token)
        elif not carrier:
            carrier = normalize_carrier(token)
    return capacity, color, carrier, grades, connectivity, ''


def _parse_device_fields(rest: List[str], product_type: str):
    """Pattern-based parse for tablet / watch / laptop SKUs, whose field order varies."""
    capacity = color = carrier = connectivity = size = ''
    grades: List[str] = []
    for token in rest:
        if product_type == PRODUCT_WATCH and not size and _WATCH_SIZE_TOKEN.match(token):
            size = _WATCH_SIZE_TOKEN.match(token).group(1)
        elif not capacity and _is_capacity_token(token) and product_type != PRODUCT_WATCH:
            capacity = normalize_capacity(token)
        elif token in CONNECTIVITY_TOKENS:
            connectivity = connectivity or token
        elif token in GRADE_SUFFIXES:
            grades.append(token)
        elif not color and _color_token(token) in _CANONICAL_COLORS:
            color = _color_token(token)
        elif not carrier:
            carrier = normalize_carrier(token)
    return capacity, color, carrier, grades, connectivity, size


# ---------------------------------------------------------------------------
# Intake SKU generation
# ---------------------------------------------------------------------------

def generate_sku(device: DeviceAttributes) -> str:
    """
    Build the intake SKU for a device: [CATEGORY-]MODEL-CAPACITY-COLOR[-CARRIER].

    Capacity is written as a bare number for GB values (the catalog convention),
    the carrier is omitted for unlocked devices, and missing parts are skipped.

    Examples:
        Fold3 / 512GB / Black / Unlocked      -> 'FOLD3-512-BLK'
        Galaxy S22 Ultra / 256GB / Black / AT&T -> 'S22ULTRA-256-BLK-ATT'
        Galaxy Tab S8 / 128GB / Gray / (none) -> 'TAB-S8-128-GRY'
    """
    product_type = get_product_type(device.model)
    parts = []
    if product_type in _SKU_PREFIX_FOR_TYPE:
        parts.append(_SKU_PREFIX_FOR_TYPE[product_type])
    parts.append(model_key(device.model).upper() or 'UNKNOWN')

    capacity = normalize_capacity(device.capacity)
    if capacity:
        parts.append(capacity[:-2] if capacity.endswith('GB') else capacity)

    color = normalize_color(device.color)
    if color:
        parts.append(color)

    if not is_unlocked_carrier(device.carrier):
        parts.append(normalize_carrier(device.carrier))
    return '-'.join(parts)
