"""
Input adapter, batch matching and coverage metrics.
"""
import math

import pandas as pd
import pytest

from sku_matcher.adapters import device_from_record
from sku_matcher.batch import RESULT_COLUMNS, compute_coverage_metrics, run_matching
from sku_matcher.catalog import CatalogStore
from sku_matcher.errors import CatalogQueryError


DEVICES = [
    {'Make': 'Samsung', 'Model': 'Galaxy Z Fold3 Duos', 'Storage': '256GB',
     'Color': 'Phantom Black', 'Carrier': 'AT&T', 'Notes': 'CARRIER UNLOCKED'},
    {'Make': 'Apple', 'Model': 'iPhone 14 Pro', 'Storage': '256GB',
     'Color': 'Black', 'Carrier': 'Verizon', 'Notes': 'FAILED FACE ID'},
    {'Make': 'Samsung', 'Model': None, 'Storage': '256GB',
     'Color': 'Black', 'Carrier': 'AT&T', 'Notes': None},
    {'Make': None, 'Model': 'Pixel 7', 'Storage': '128GB',
     'Color': 'Black', 'Carrier': 'Unlocked', 'Notes': None},
]


class DownStore(CatalogStore):
    def query_candidates(self, tier):
        raise CatalogQueryError('catalog unavailable', tier=tier.tier)


@pytest.mark.parametrize("record, expected", [
    ({'Make': 'Samsung', 'Model': 'Galaxy S22', 'Storage': '256GB'},
     {'brand': 'Samsung', 'model': 'Galaxy S22', 'capacity': '256GB'}),
    ({'model_name': 'iPhone 14 Pro', 'Colour': float('nan'), 'device_notes': ' ESIM LOCKED '},
     {'brand': 'Apple', 'model': 'iPhone 14 Pro', 'color': None, 'notes': 'ESIM LOCKED'}),
    ({'Manufacturer': 'Unknown', 'Model': 'Galaxy Z Fold3', 'Memory': 512},
     {'brand': 'Samsung', 'capacity': '512'}),
])
def test_device_from_record(record, expected):
    device = device_from_record(record)
    for field, value in expected.items():
        assert getattr(device, field) == value


def test_device_from_record_without_model():
    device = device_from_record({'Brand': 'Samsung', 'Model': math.nan})
    assert device.model is None
    assert device.brand == 'Samsung'


def test_run_matching(store):
    progress = []
    df = run_matching(pd.DataFrame(DEVICES), store, max_workers=4,
                      progress_callback=lambda done, total: progress.append((done, total)))

    assert list(df['match_method']) == ['exact', 'failed_device', 'error', 'no_match']
    assert list(df['sku_matched']) == ['FOLD3-256-BLK', '', '', '']
    assert list(df['carrier_override']) == ['UNLOCKED', '', '', '']
    assert df.loc[0, 'intake_sku'] == 'FOLD3-256-BLK-ATT'
    assert df.loc[0, 'match_notes'] == 'samsung_unlocked_notes'
    assert df.loc[2, 'error'] != ''
    assert list(df['Model'])[0] == 'Galaxy Z Fold3 Duos'
    assert progress[-1] == (4, 4)


def test_run_matching_catalog_outage_is_an_error_not_a_no_match():
    df = run_matching(pd.DataFrame(DEVICES[:1]), DownStore(), max_workers=1)
    assert df.loc[0, 'match_method'] == 'error'
    assert 'catalog unavailable' in df.loc[0, 'error']


def test_run_matching_empty_frame(store):
    df = run_matching(pd.DataFrame(columns=['Model']), store)
    assert len(df) == 0
    for col in RESULT_COLUMNS:
        assert col in df.columns


def test_compute_coverage_metrics(store):
    metrics = compute_coverage_metrics(run_matching(pd.DataFrame(DEVICES), store, max_workers=2))
    assert metrics['total_rows'] == 4
    assert metrics['matched_count'] == 1
    assert metrics['matched_rate'] == 25.0
    assert metrics['no_match_count'] == 1
    assert metrics['failed_device_count'] == 1
    assert metrics['error_count'] == 1
    assert metrics['override_count'] == 1
    assert metrics['avg_match_score'] == 1.0
    assert metrics['tier_breakdown'] == {'exact': 1}


def test_compute_coverage_metrics_empty():
    metrics = compute_coverage_metrics(pd.DataFrame(columns=list(RESULT_COLUMNS)))
    assert metrics['total_rows'] == 0
    assert metrics['method_breakdown'] == {}
