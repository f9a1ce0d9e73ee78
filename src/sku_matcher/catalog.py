"""
Catalog stores: where the resolver gets its candidate SKUs.

The resolver only ever talks to the ``CatalogStore`` interface:

    query_candidates(TierSpec) -> List[RawSkuRow]
    carrier_rules()            -> rule rows for CarrierRuleTable.from_rows

Two implementations ship with the package:

    - DataFrameCatalogStore: a cleaned pandas frame (CSV / Parquet / Excel).
    - SqlCatalogStore: a read-only view of an existing ``sku_master`` table
      through a pooled SQLAlchemy engine.

Stores are read-only and hold no per-device state, so one instance can serve
many concurrent resolutions.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from . import config
from .errors import CatalogQueryError
from .models import TIER_EXACT, ParsedSkuFields, RawSkuRow, TierSpec
from .normalizer import model_key, normalize_brand, normalize_capacity
from .sku_codes import is_vendor_opaque, parse_sku_code

logger = logging.getLogger(__name__)

# Column aliases seen in exported catalog sheets
_SKU_COLUMN_ALIASES = ('sku_code', 'SKU', 'sku', 'SKU Code', 'Sku Code', 'sku_id')

# Placeholder rows left behind by manual catalog edits
_PLACEHOLDER_PATTERN = r'^(?:TEST|PLACEHOLDER|SAMPLE)\b'

_TRUE_STRINGS = frozenset({'true', 't', '1', 'yes', 'y'})
_FALSE_STRINGS = frozenset({'false', 'f', '0', 'no', 'n'})


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE_STRINGS:
            return True
        if v in _FALSE_STRINGS:
            return False
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        pass
    return bool(value)


def matches_tier(parsed: ParsedSkuFields, tier: TierSpec) -> bool:
    """
    Whether a parsed SKU satisfies a tier's filters.

    Brand filtering only excludes SKUs of a *different* known brand: many
    catalog codes ('S22-ULTRA-...') carry no brand keyword at all.
    The exact tier needs an equal model key; the relaxed tiers accept model
    keys contained in each other ('s22' / 's22ultra').
    """
    if parsed.product_type != tier.product_type:
        return False
    if parsed.is_unlocked_class != tier.unlocked:
        return False
    if tier.brand:
        brand = normalize_brand(parsed.brand)
        if brand and brand != tier.brand:
            return False
    if tier.model_key:
        key = '' if parsed.is_stub else model_key(parsed.model)
        if not key:
            return False
        if tier.tier == TIER_EXACT:
            if key != tier.model_key:
                return False
        elif tier.model_key not in key and key not in tier.model_key:
            return False
    if tier.capacity and normalize_capacity(parsed.capacity) != tier.capacity:
        return False
    if tier.color and parsed.color != tier.color:
        return False
    return True


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class CatalogStore(ABC):
    """Read-only source of candidate SKUs."""

    @abstractmethod
    def query_candidates(self, tier: TierSpec) -> List[RawSkuRow]:
        """Rows satisfying ``tier``. Raise CatalogQueryError on I/O failure."""

    def carrier_rules(self) -> List[Dict[str, object]]:
        """Carrier pattern rows ({carrier_pattern, target_sku, priority})."""
        return []


# ---------------------------------------------------------------------------
# Catalog files (pandas)
# ---------------------------------------------------------------------------

def load_catalog(path: str) -> pd.DataFrame:
    """Read a raw catalog export (.csv, .parquet, .xlsx / .xls)."""
    ext = os.path.splitext(path)[1].lower()
    if ext == '.csv':
        return pd.read_csv(path, dtype={'sku_code': str})
    if ext == '.parquet':
        return pd.read_parquet(path)
    if ext in ('.xlsx', '.xls'):
        return pd.read_excel(path)
    raise ValueError(f"Unsupported catalog file type: {path}")


def clean_catalog(df_catalog: pd.DataFrame) -> Tuple[pd.DataFrame, Dict]:
    """
    Clean a raw catalog frame:
        1. Locate the SKU column (sku_code / SKU / SKU Code ...)
        2. Drop rows with null/empty codes
        3. Drop TEST / PLACEHOLDER / SAMPLE rows
        4. Drop inactive rows (when an is_active column exists)
        5. Drop duplicate codes, keeping the first
        6. Add parsed columns used for tier filtering

    Returns:
        - Cleaned DataFrame with columns sku_code, is_unlocked, source_tab,
          brand_norm, model_key, capacity, color, product_type, is_stub
        - Stats dict (includes 'warnings' list)
    """
    df = df_catalog.copy()
    warnings = []
    original_count = len(df)

    sku_col = next((c for c in _SKU_COLUMN_ALIASES if c in df.columns), None)
    if sku_col is None:
        raise ValueError(f"Catalog has no SKU column (expected one of {', '.join(_SKU_COLUMN_ALIASES)})")
    if sku_col != 'sku_code':
        df = df.rename(columns={sku_col: 'sku_code'})

    df = df[df['sku_code'].notna()].copy()
    df['sku_code'] = df['sku_code'].astype(str).str.strip()
    df = df[df['sku_code'] != '']
    null_dropped = original_count - len(df)

    pre_test = len(df)
    test_mask = df['sku_code'].str.contains(_PLACEHOLDER_PATTERN, case=False, na=False)
    df = df[~test_mask]
    test_dropped = pre_test - len(df)

    pre_inactive = len(df)
    if 'is_active' in df.columns:
        df = df[df['is_active'].map(lambda v: _as_bool(v, True)).astype(bool)]
    inactive_dropped = pre_inactive - len(df)

    pre_dupes = len(df)
    df = df.drop_duplicates(subset='sku_code', keep='first').copy()
    duplicate_dropped = pre_dupes - len(df)
    if duplicate_dropped:
        warnings.append(f"Dropped {duplicate_dropped} duplicate SKU codes")

    parsed = [parse_sku_code(code) for code in df['sku_code']]
    if 'is_unlocked' in df.columns:
        df['is_unlocked'] = [_as_bool(v, p.is_unlocked_class) for v, p in zip(df['is_unlocked'], parsed)]
    else:
        df['is_unlocked'] = [p.is_unlocked_class for p in parsed]
    if 'source_tab' in df.columns:
        df['source_tab'] = df['source_tab'].fillna('').astype(str)
    else:
        df['source_tab'] = ''

    df['brand_norm'] = [normalize_brand(p.brand) for p in parsed]
    df['model_key'] = ['' if p.is_stub else model_key(p.model) for p in parsed]
    df['capacity'] = [normalize_capacity(p.capacity) for p in parsed]
    df['color'] = ['' if p.is_stub else p.color for p in parsed]
    df['product_type'] = [p.product_type for p in parsed]
    df['is_stub'] = [p.is_stub for p in parsed]

    opaque = sum(1 for code in df['sku_code'] if is_vendor_opaque(code.upper()))
    if opaque:
        warnings.append(f"{opaque} SKU codes are vendor-opaque and can only match as low-confidence stubs")
    mismatched = sum(
        1 for flag, p in zip(df['is_unlocked'], parsed) if not p.is_stub and flag != p.is_unlocked_class
    )
    if mismatched:
        warnings.append(f"{mismatched} SKUs have an is_unlocked flag that disagrees with their carrier field")

    df = df.reset_index(drop=True)
    stats = {
        'original': original_count,
        'null_dropped': null_dropped,
        'test_dropped': test_dropped,
        'inactive_dropped': inactive_dropped,
        'duplicate_dropped': duplicate_dropped,
        'final': len(df),
        'warnings': warnings,
    }
    logger.info("Catalog cleaned: %d -> %d SKUs", original_count, len(df))
    for warning in warnings:
        logger.warning("Catalog: %s", warning)
    return df, stats


class DataFrameCatalogStore(CatalogStore):
    """
    In-memory store over a frame produced by clean_catalog().

    Example:
        df, stats = clean_catalog(load_catalog('catalog.xlsx'))
        store = DataFrameCatalogStore(df)
    """

    def __init__(self, df_catalog: pd.DataFrame, rule_rows: Optional[List[Dict[str, object]]] = None):
        self._df = df_catalog
        self._rule_rows = list(rule_rows or [])

    @classmethod
    def from_path(cls, path: Optional[str] = None,
                  rule_rows: Optional[List[Dict[str, object]]] = None) -> 'DataFrameCatalogStore':
        """Load and clean a catalog file (defaults to SKU_MATCHER_CATALOG_PATH)."""
        path = path or config.CATALOG_PATH
        if not path:
            raise ValueError("No catalog path given and SKU_MATCHER_CATALOG_PATH is not set")
        df, _ = clean_catalog(load_catalog(path))
        return cls(df, rule_rows)

    def __len__(self) -> int:
        return len(self._df)

    def carrier_rules(self) -> List[Dict[str, object]]:
        return list(self._rule_rows)

    def query_candidates(self, tier: TierSpec) -> List[RawSkuRow]:
        df = self._df
        if df.empty:
            return []
        mask = (df['product_type'] == tier.product_type) & (df['is_unlocked'] == tier.unlocked)
        if tier.brand:
            mask &= (df['brand_norm'] == tier.brand) | (df['brand_norm'] == '')
        if tier.model_key:
            keys = df['model_key']
            if tier.tier == TIER_EXACT:
                mask &= keys == tier.model_key
            else:
                contains = keys.str.contains(tier.model_key, regex=False)
                contained = keys.map(lambda k: bool(k) and k in tier.model_key)
                mask &= (keys != '') & (contains | contained)
        if tier.capacity:
            mask &= df['capacity'] == tier.capacity
        if tier.color:
            mask &= df['color'] == tier.color

        hits = df[mask].sort_values('sku_code')
        return [
            RawSkuRow(sku_code=row.sku_code, is_unlocked=bool(row.is_unlocked), source_tab=row.source_tab)
            for row in hits.itertuples(index=False)
        ]


# ---------------------------------------------------------------------------
# SQL (existing sku_master table)
# ---------------------------------------------------------------------------

SKU_QUERY = text(
    "SELECT sku_code, is_unlocked, source_tab FROM sku_master "
    "WHERE is_active = :active AND is_unlocked = :unlocked "
    "ORDER BY sku_code"
)

RULES_TABLE = 'sku_mapping_rules'

RULES_QUERY = text(
    f"SELECT carrier_pattern, target_sku, priority FROM {RULES_TABLE} "
    "WHERE carrier_pattern IS NOT NULL AND is_active = :active "
    "ORDER BY priority DESC"
)


class SqlCatalogStore(CatalogStore):
    """
    Read-only store over the ``sku_master`` table.

    SQL narrows by activity and carrier class; the parsed-field filters of the
    tier are applied in Python because SKU fields live inside the code string.
    Any SQLAlchemyError is re-raised as CatalogQueryError.
    """

    def __init__(self, engine: Union[Engine, str, None] = None):
        if engine is None or isinstance(engine, str):
            engine = create_engine(engine or config.DATABASE_URL, pool_pre_ping=True)
        self.engine = engine

    def query_candidates(self, tier: TierSpec) -> List[RawSkuRow]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(SKU_QUERY, {'active': True, 'unlocked': tier.unlocked}).fetchall()
        except SQLAlchemyError as e:
            raise CatalogQueryError(f"sku_master query failed for tier {tier.tier}: {e}", tier=tier.tier) from e

        results = []
        for sku_code, is_unlocked, source_tab in rows:
            if not sku_code:
                continue
            code = str(sku_code).strip()
            if matches_tier(parse_sku_code(code), tier):
                results.append(RawSkuRow(sku_code=code, is_unlocked=bool(is_unlocked), source_tab=source_tab or ''))
        logger.debug("Tier %s: %d of %d sku_master rows kept", tier.tier, len(results), len(rows))
        return results

    def carrier_rules(self) -> List[Dict[str, object]]:
        """Active rule rows, or [] when the database has no rule table."""
        try:
            if not inspect(self.engine).has_table(RULES_TABLE):
                logger.info("No %s table, using built-in carrier rules", RULES_TABLE)
                return []
            with self.engine.connect() as conn:
                rows = conn.execute(RULES_QUERY, {'active': True}).mappings().fetchall()
        except SQLAlchemyError as e:
            raise CatalogQueryError(f"sku_mapping_rules query failed: {e}") from e
        return [dict(row) for row in rows]
