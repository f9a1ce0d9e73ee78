"""
Catalog cleaning and the DataFrame / SQL catalog stores.
"""
import pandas as pd
import pytest
from sqlalchemy import create_engine

from sku_matcher import config
from sku_matcher.catalog import (
    DataFrameCatalogStore,
    SqlCatalogStore,
    clean_catalog,
    load_catalog,
    matches_tier,
)
from sku_matcher.errors import CatalogQueryError
from sku_matcher.models import (
    PRODUCT_PHONE, PRODUCT_TABLET, TIER_BRAND_MODEL, TIER_BRAND_ONLY, TIER_EXACT, DeviceAttributes, TierSpec,
)
from sku_matcher.resolver import SkuResolver
from sku_matcher.sku_codes import parse_sku_code


def _codes(rows):
    return [r.sku_code for r in rows]


def test_clean_catalog_stats():
    raw = pd.DataFrame({
        'SKU': ['FOLD3-512-BLK', 'FOLD3-512-BLK', None, '  ', 'TEST-FOLD3-512', 'FOLD3-256-BLK', '123456789'],
        'is_active': [True, True, True, True, True, 'false', True],
    })
    df, stats = clean_catalog(raw)

    assert list(df['sku_code']) == ['FOLD3-512-BLK', '123456789']
    assert stats['original'] == 7
    assert stats['null_dropped'] == 2
    assert stats['test_dropped'] == 1
    assert stats['inactive_dropped'] == 1
    assert stats['duplicate_dropped'] == 1
    assert stats['final'] == 2
    assert any('duplicate' in w for w in stats['warnings'])
    assert any('vendor-opaque' in w for w in stats['warnings'])


def test_clean_catalog_parsed_columns(catalog_frame):
    row = catalog_frame[catalog_frame['sku_code'] == 'FOLD3-256-BLK-ATT-VG'].iloc[0]
    assert row['brand_norm'] == 'samsung'
    assert row['model_key'] == 'fold3'
    assert row['capacity'] == '256GB'
    assert row['color'] == 'BLK'
    assert row['product_type'] == PRODUCT_PHONE
    assert not row['is_unlocked']

    tab = catalog_frame[catalog_frame['sku_code'] == 'TAB-S7-PLUS-256-BLK'].iloc[0]
    assert tab['product_type'] == PRODUCT_TABLET
    assert tab['is_unlocked']


def test_clean_catalog_requires_sku_column():
    with pytest.raises(ValueError):
        clean_catalog(pd.DataFrame({'name': ['FOLD3-512-BLK']}))


def test_exact_tier_query(store):
    tier_spec = TierSpec(TIER_EXACT, PRODUCT_PHONE, True, brand='samsung',
                    model_key='fold3', capacity='512GB', color='BLK')
    assert _codes(store.query_candidates(tier_spec)) == ['FOLD3-512-BLK', 'FOLD3-512-BLK-ACCEPTABLE']


def test_carrier_class_filter(store):
    tier_spec = TierSpec(TIER_EXACT, PRODUCT_PHONE, False, brand='samsung',
                    model_key='fold3', capacity='256GB', color='BLK')
    assert _codes(store.query_candidates(tier_spec)) == ['FOLD3-256-BLK-ATT', 'FOLD3-256-BLK-ATT-VG']


def test_brand_model_tier_uses_key_containment(store):
    tier_spec = TierSpec(TIER_BRAND_MODEL, PRODUCT_PHONE, False, brand='samsung', model_key='s22')
    assert 'S22-ULTRA-512GB-BLACK-AT&T' in _codes(store.query_candidates(tier_spec))


def test_product_type_filter(store):
    tier_spec = TierSpec(TIER_BRAND_ONLY, PRODUCT_TABLET, True, brand='samsung')
    assert _codes(store.query_candidates(tier_spec)) == ['TAB-S7-PLUS-256-BLK', 'TAB-S8-ULTRA-128-BLK-WIFI']


def test_brand_filter_excludes_other_known_brands(store):
    tier_spec = TierSpec(TIER_BRAND_ONLY, PRODUCT_PHONE, True, brand='samsung')
    codes = _codes(store.query_candidates(tier_spec))
    assert 'IPHONE14PRO-256GB-BLK-UNL' not in codes
    assert 'S22-ULTRA-256-BLK' in codes


def test_matches_tier():
    tier_spec = TierSpec(TIER_EXACT, PRODUCT_PHONE, True, model_key='fold3', capacity='512GB', color='BLK')
    assert matches_tier(parse_sku_code('FOLD3-512-BLK'), tier_spec)
    assert not matches_tier(parse_sku_code('FOLD3-512-BLK-ATT'), tier_spec)
    assert not matches_tier(parse_sku_code('FOLD3-256-BLK'), tier_spec)
    assert not matches_tier(parse_sku_code('TAB-FOLD3-512-BLK'), tier_spec)


def test_load_catalog_csv(tmp_path):
    path = tmp_path / 'catalog.csv'
    pd.DataFrame({'sku_code': ['FOLD3-512-BLK', 'FOLD3-512-BLK-ATT']}).to_csv(path, index=False)
    store = DataFrameCatalogStore.from_path(str(path))
    assert len(store) == 2


def test_load_catalog_rejects_unknown_extension(tmp_path):
    with pytest.raises(ValueError):
        load_catalog(str(tmp_path / 'catalog.json'))


def test_sql_store_queries(sqlite_engine):
    store = SqlCatalogStore(sqlite_engine)
    tier_spec = TierSpec(TIER_EXACT, PRODUCT_PHONE, True, brand='samsung',
                    model_key='fold3', capacity='512GB', color='BLK')
    rows = store.query_candidates(tier_spec)
    assert _codes(rows) == ['FOLD3-512-BLK', 'FOLD3-512-BLK-ACCEPTABLE']
    assert rows[0].is_unlocked
    assert rows[0].source_tab == 'Unlocked'


def test_sql_store_skips_inactive_rows(sqlite_engine):
    store = SqlCatalogStore(sqlite_engine)
    tier_spec = TierSpec(TIER_BRAND_MODEL, PRODUCT_PHONE, True, model_key='fold3')
    assert 'FOLD3-512-WHT' not in _codes(store.query_candidates(tier_spec))


def test_sql_store_carrier_rules(sqlite_engine):
    rules = SqlCatalogStore(sqlite_engine).carrier_rules()
    assert rules == [{'carrier_pattern': 'CRICKET|CRK', 'target_sku': 'CRK', 'priority': 5}]


def test_resolver_layers_store_rules_over_defaults(sqlite_engine):
    resolver = SkuResolver(SqlCatalogStore(sqlite_engine))
    assert resolver.carrier_rules.normalize('Cricket Wireless') == 'CRK'
    assert resolver.carrier_rules.normalize('T-Mobile') == 'TMO'


def test_sql_store_end_to_end(sqlite_engine):
    device = DeviceAttributes(model='FOLD3', capacity='512GB', color='BLK', carrier='UNLOCKED')
    result = SkuResolver(SqlCatalogStore(sqlite_engine)).resolve(device)
    assert result.sku_code == 'FOLD3-512-BLK'
    assert result.source_tab == 'Unlocked'


def test_sql_store_wraps_database_errors():
    engine = create_engine('sqlite://')
    store = SqlCatalogStore(engine)
    tier_spec = TierSpec(TIER_BRAND_ONLY, PRODUCT_PHONE, True, brand='samsung')
    with pytest.raises(CatalogQueryError) as excinfo:
        store.query_candidates(tier_spec)
    assert excinfo.value.tier == TIER_BRAND_ONLY
    assert excinfo.value.__cause__ is not None


def test_from_path_uses_configured_catalog(tmp_path, monkeypatch):
    path = tmp_path / 'catalog.csv'
    pd.DataFrame({'sku_code': ['FOLD3-512-BLK']}).to_csv(path, index=False)
    monkeypatch.setattr(config, 'CATALOG_PATH', str(path))
    assert len(DataFrameCatalogStore.from_path()) == 1

    monkeypatch.setattr(config, 'CATALOG_PATH', '')
    with pytest.raises(ValueError):
        DataFrameCatalogStore.from_path()


def test_sql_store_without_rule_table(sku_master_only_engine):
    store = SqlCatalogStore(sku_master_only_engine)
    assert store.carrier_rules() == []

    device = DeviceAttributes(model='FOLD3', capacity='512GB', color='BLK')
    result = SkuResolver(store).resolve(device)
    assert result.sku_code == 'FOLD3-512-BLK'
