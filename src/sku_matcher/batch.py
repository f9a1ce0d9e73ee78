"""
Batch matching over a DataFrame of device records.

Devices are resolved in parallel with a bounded thread pool; tiers run
sequentially inside each device. Row order is preserved. A row that fails
(malformed device, catalog outage) is reported with ``match_method='error'``
and never counted as a no-match.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

import pandas as pd

from . import config
from .adapters import device_from_record
from .catalog import CatalogStore
from .errors import SkuMatchingError
from .models import METHOD_FAILED_DEVICE
from .resolver import SkuResolver
from .sku_codes import generate_sku

logger = logging.getLogger(__name__)

METHOD_NO_MATCH = 'no_match'
METHOD_ERROR = 'error'

RESULT_COLUMNS = (
    'intake_sku', 'sku_matched', 'match_score', 'match_method', 'match_tier',
    'source_tab', 'carrier_override', 'match_notes', 'error',
)


def _empty_result(method: str, error: str = '', intake_sku: str = '') -> Dict[str, object]:
    return {
        'intake_sku': intake_sku,
        'sku_matched': '',
        'match_score': 0.0,
        'match_method': method,
        'match_tier': '',
        'source_tab': '',
        'carrier_override': '',
        'match_notes': '',
        'error': error,
    }


def match_record(resolver: SkuResolver, record: Dict) -> Dict[str, object]:
    """Resolve one record into a flat result row (never raises SkuMatchingError)."""
    intake_sku = ''
    try:
        device = device_from_record(record)
        if device.model:
            intake_sku = generate_sku(device)
        result = resolver.resolve(device)
    except SkuMatchingError as e:
        logger.warning("SKU matching failed for %r: %s", record.get('model') or record.get('Model'), e)
        return _empty_result(METHOD_ERROR, error=str(e), intake_sku=intake_sku)

    if result is None:
        return _empty_result(METHOD_NO_MATCH, intake_sku=intake_sku)
    row = result.to_dict()
    row['intake_sku'] = intake_sku
    row['error'] = ''
    return row


def run_matching(
    df_devices: pd.DataFrame,
    store: CatalogStore,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable] = None,
    resolver: Optional[SkuResolver] = None,
) -> pd.DataFrame:
    """
    Resolve every device row of ``df_devices`` against ``store``.

    Args:
        df_devices: Device records (columns per adapters.FIELD_ALIASES)
        store: Catalog store shared by all workers
        max_workers: Thread pool size (defaults to config.MAX_WORKERS)
        progress_callback: optional callable(current, total)
        resolver: Pre-built resolver (skips loading the store's carrier rules)

    Returns:
        Copy of df_devices with added columns:
            intake_sku, sku_matched, match_score, match_method, match_tier,
            source_tab, carrier_override, match_notes, error
    """
    df = df_devices.copy()
    df.columns = [str(c).strip() for c in df.columns]
    total = len(df)
    resolver = resolver or SkuResolver(store)
    workers = max(1, max_workers or config.MAX_WORKERS)

    logger.info("Matching %d devices with %d workers", total, workers)
    records = df.to_dict('records')
    results = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        for row in executor.map(lambda record: match_record(resolver, record), records):
            results.append(row)
            if progress_callback and (len(results) % 50 == 0 or len(results) == total):
                progress_callback(len(results), total)

    results_df = pd.DataFrame(results, columns=list(RESULT_COLUMNS))
    for col in RESULT_COLUMNS:
        df[col] = results_df[col].values

    logger.info(
        "Matched %d/%d devices (%d errors)",
        int((df['sku_matched'] != '').sum()), total, int((df['match_method'] == METHOD_ERROR).sum()),
    )
    return df


# ---------------------------------------------------------------------------
# Coverage metrics
# ---------------------------------------------------------------------------

def compute_coverage_metrics(df_results: pd.DataFrame) -> Dict[str, object]:
    """
    Summarise a run_matching() result.

    Returns a dict with:
        total_rows: rows processed
        matched_count / matched_rate: rows with a SKU
        no_match_count / no_match_rate: rows no tier could match
        failed_device_count: rows excluded by inspection notes
        error_count: rows that raised (malformed device, catalog failure)
        override_count: matched rows whose carrier was overridden by notes
        avg_match_score: average score of matched rows
        method_breakdown: match_method -> count
        tier_breakdown: match_tier -> count (matched rows only)
    """
    total = len(df_results)
    if total == 0:
        return {'total_rows': 0, 'matched_count': 0, 'matched_rate': 0.0,
                'no_match_count': 0, 'no_match_rate': 0.0,
                'failed_device_count': 0, 'error_count': 0, 'override_count': 0,
                'avg_match_score': 0.0, 'method_breakdown': {}, 'tier_breakdown': {}}

    matched = df_results[df_results['sku_matched'] != '']
    no_match = df_results[df_results['match_method'] == METHOD_NO_MATCH]
    failed = df_results[df_results['match_method'] == METHOD_FAILED_DEVICE]
    errors = df_results[df_results['match_method'] == METHOD_ERROR]
    overrides = matched[matched['carrier_override'] != '']

    avg_score = round(float(matched['match_score'].mean()), 3) if len(matched) > 0 else 0.0

    return {
        'total_rows': total,
        'matched_count': len(matched),
        'matched_rate': round(len(matched) / total * 100, 1),
        'no_match_count': len(no_match),
        'no_match_rate': round(len(no_match) / total * 100, 1),
        'failed_device_count': len(failed),
        'error_count': len(errors),
        'override_count': len(overrides),
        'avg_match_score': avg_score,
        'method_breakdown': df_results['match_method'].value_counts().to_dict(),
        'tier_breakdown': matched['match_tier'].value_counts().to_dict(),
    }
