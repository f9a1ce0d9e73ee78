import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from sku_matcher.catalog import DataFrameCatalogStore, clean_catalog
from sku_matcher.models import DeviceAttributes

CATALOG_CODES = [
    'FOLD3-256-BLK',
    'FOLD3-256-BLK-VG',
    'FOLD3-256-BLK-ATT',
    'FOLD3-256-BLK-ATT-VG',
    'FOLD3-512-BLK',
    'FOLD3-512-BLK-ACCEPTABLE',
    'FOLD3-256-GRN-TMO',
    'S22-ULTRA-512GB-BLACK-AT&T',
    'S22-ULTRA-256-BLK',
    'TAB-S7-PLUS-256-BLK',
    'TAB-S8-ULTRA-128-BLK-WIFI',
    'WATCH-6-CLASSIC-47-4G-BLK',
    'IPHONE14PRO-256GB-BLK-UNL',
    'IPHONE14PRO-256-BLK-VRZ',
    '123456789',
]


@pytest.fixture
def catalog_frame():
    """Cleaned catalog frame built from CATALOG_CODES."""
    raw = pd.DataFrame({
        'sku_code': CATALOG_CODES,
        'source_tab': ['Samsung'] * len(CATALOG_CODES),
    })
    df, _ = clean_catalog(raw)
    return df


@pytest.fixture
def store(catalog_frame):
    return DataFrameCatalogStore(catalog_frame)


@pytest.fixture
def fold3_override_device():
    return DeviceAttributes(
        brand='Samsung',
        model='Galaxy Z Fold3 Duos',
        capacity='256GB',
        color='Phantom Black',
        carrier='AT&T',
        notes='CARRIER UNLOCKED',
    )


def _sqlite_engine(with_rules):
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE sku_master ("
            "sku_code TEXT, is_unlocked BOOLEAN, source_tab TEXT, is_active BOOLEAN)"
        ))
        conn.execute(
            text("INSERT INTO sku_master VALUES (:sku_code, :is_unlocked, :source_tab, :is_active)"),
            [
                {'sku_code': 'FOLD3-512-BLK', 'is_unlocked': True, 'source_tab': 'Unlocked', 'is_active': True},
                {'sku_code': 'FOLD3-512-BLK-ACCEPTABLE', 'is_unlocked': True, 'source_tab': 'Unlocked', 'is_active': True},
                {'sku_code': 'FOLD3-512-BLK-ATT', 'is_unlocked': False, 'source_tab': 'ATT', 'is_active': True},
                {'sku_code': 'FOLD3-512-WHT', 'is_unlocked': True, 'source_tab': 'Unlocked', 'is_active': False},
            ],
        )
        if with_rules:
            conn.execute(text(
                "CREATE TABLE sku_mapping_rules ("
                "carrier_pattern TEXT, target_sku TEXT, priority INTEGER, is_active BOOLEAN)"
            ))
            conn.execute(
                text("INSERT INTO sku_mapping_rules VALUES (:carrier_pattern, :target_sku, :priority, :is_active)"),
                [
                    {'carrier_pattern': 'CRICKET|CRK', 'target_sku': 'CRK', 'priority': 5, 'is_active': True},
                    {'carrier_pattern': 'METRO|MPCS', 'target_sku': 'MTR', 'priority': 5, 'is_active': False},
                ],
            )
    return engine


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite with sku_master and sku_mapping_rules populated."""
    engine = _sqlite_engine(with_rules=True)
    yield engine
    engine.dispose()


@pytest.fixture
def sku_master_only_engine():
    """In-memory SQLite with sku_master only (no carrier rule table)."""
    engine = _sqlite_engine(with_rules=False)
    yield engine
    engine.dispose()
