"""
Input adapter: arbitrary device records -> DeviceAttributes.

Intake exports, test-station payloads and spreadsheet rows all name the same
fields differently ('Model' / 'model_name', 'Capacity' / 'Storage', ...).
Everything is mapped here so the resolver only ever sees DeviceAttributes.
"""

from typing import Mapping, Optional, Tuple

import pandas as pd

from .models import DeviceAttributes
from .normalizer import infer_brand_from_model, is_unknown

# Field -> accepted keys, first non-empty value wins
FIELD_ALIASES = {
    'model': ('model', 'Model', 'model_name', 'Model Name', 'device_model', 'product_name'),
    'brand': ('brand', 'Brand', 'make', 'Make', 'manufacturer', 'Manufacturer'),
    'capacity': ('capacity', 'Capacity', 'storage', 'Storage', 'memory', 'Memory'),
    'color': ('color', 'Color', 'colour', 'Colour'),
    'carrier': ('carrier', 'Carrier', 'network', 'Network'),
    'notes': ('notes', 'Notes', 'device_notes', 'inspection_notes', 'Inspection Notes'),
}


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def _first(record: Mapping, keys: Tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = _clean(record.get(key))
        if value is not None:
            return value
    return None


def device_from_record(record: Mapping) -> DeviceAttributes:
    """
    Build DeviceAttributes from a dict-like record (dict, pandas row).

    Missing, blank and NaN values become None. A missing brand is inferred from
    the model when the model names one ('Galaxy Z Fold3' -> 'Samsung').

    Examples:
        {'Make': 'Samsung', 'Model': 'Galaxy S22', 'Storage': '256GB'}
            -> DeviceAttributes(model='Galaxy S22', brand='Samsung', capacity='256GB')
        {'model': 'iPhone 14 Pro', 'color': float('nan')}
            -> DeviceAttributes(model='iPhone 14 Pro', brand='Apple')
    """
    values = {field: _first(record, keys) for field, keys in FIELD_ALIASES.items()}
    if values['model'] and is_unknown(values['brand']):
        values['brand'] = infer_brand_from_model(values['model']) or None
    return DeviceAttributes(**values)
