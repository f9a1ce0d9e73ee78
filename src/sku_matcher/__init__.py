"""SKU resolution engine for refurbished mobile devices."""

from .adapters import device_from_record
from .batch import compute_coverage_metrics, run_matching
from .carrier_override import resolve_carrier_override
from .catalog import (
    CatalogStore, DataFrameCatalogStore, SqlCatalogStore, clean_catalog, load_catalog,
)
from .errors import CatalogQueryError, MalformedDeviceError, SkuMatchingError
from .models import (
    CarrierOverrideDecision, DeviceAttributes, MatchCandidate, MatchResult, ParsedSkuFields,
    RawSkuRow, TierSpec, TierTrace,
)
from .resolver import SkuResolver, explain_resolution, method_for_score, resolve_sku
from .scorer import score, score_breakdown
from .sku_codes import generate_sku, get_product_type, parse_sku_code

__all__ = [
    'CarrierOverrideDecision', 'CatalogQueryError', 'CatalogStore', 'DataFrameCatalogStore',
    'DeviceAttributes', 'MalformedDeviceError', 'MatchCandidate', 'MatchResult',
    'ParsedSkuFields', 'RawSkuRow', 'SkuMatchingError', 'SkuResolver', 'SqlCatalogStore',
    'TierSpec', 'TierTrace', 'clean_catalog', 'compute_coverage_metrics', 'device_from_record',
    'explain_resolution', 'generate_sku', 'get_product_type', 'load_catalog', 'method_for_score',
    'parse_sku_code', 'resolve_carrier_override', 'resolve_sku', 'run_matching', 'score',
    'score_breakdown',
]
