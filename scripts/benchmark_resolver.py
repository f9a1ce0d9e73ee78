"""
Micro-benchmark for the SKU resolver.

Measures:
1. clean_catalog() on a synthetic 10k SKU catalog
2. parse_sku_code() / normalize_color() hot paths
3. run_matching() end-to-end on a synthetic 1k device sheet

Usage:
    python scripts/benchmark_resolver.py
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
import time
import pandas as pd
import numpy as np
from sku_matcher.batch import compute_coverage_metrics, run_matching
from sku_matcher.catalog import DataFrameCatalogStore, clean_catalog
from sku_matcher.normalizer import normalize_color
from sku_matcher.sku_codes import parse_sku_code

MODELS = ['FOLD3', 'FOLD4', 'FLIP4', 'S21', 'S22-ULTRA', 'S23-PLUS', 'IPHONE13', 'IPHONE14PRO', 'PIXEL7']
CAPACITIES = ['128', '256', '512']
COLORS = ['BLK', 'WHT', 'GRN', 'PUR', 'GLD']
CARRIERS = ['', 'ATT', 'TMO', 'VRZ']
GRADES = ['', 'VG', 'ACCEPTABLE']

DEVICE_MODELS = {
    'FOLD3': 'Galaxy Z Fold3', 'FOLD4': 'Galaxy Z Fold4', 'FLIP4': 'Galaxy Z Flip4',
    'S21': 'Galaxy S21', 'S22-ULTRA': 'Galaxy S22 Ultra', 'S23-PLUS': 'Galaxy S23 Plus',
    'IPHONE13': 'iPhone 13', 'IPHONE14PRO': 'iPhone 14 Pro', 'PIXEL7': 'Pixel 7',
}
DEVICE_COLORS = ['Phantom Black', 'White', 'Green', 'Lavender', 'Gold', 'PHA']
DEVICE_CARRIERS = ['Unlocked', 'AT&T', 'T-Mobile', 'Verizon', '']
DEVICE_NOTES = ['', '', '', 'CARRIER UNLOCKED', 'FAILED FACE ID', 'ESIM LOCKED']


def generate_synthetic_catalog(n_rows: int = 10000) -> pd.DataFrame:
    """Generate a synthetic SKU catalog (duplicates included, like real exports)."""
    data = []
    for i in range(n_rows):
        parts = [np.random.choice(MODELS), np.random.choice(CAPACITIES), np.random.choice(COLORS)]
        carrier = np.random.choice(CARRIERS)
        grade = np.random.choice(GRADES)
        if carrier:
            parts.append(carrier)
        if grade:
            parts.append(grade)
        data.append({
            'sku_code': '-'.join(parts),
            'source_tab': 'Unlocked' if not carrier else carrier,
            'is_active': i % 50 != 0,
        })
    return pd.DataFrame(data)


def generate_synthetic_devices(n_rows: int = 1000) -> pd.DataFrame:
    """Generate a synthetic intake sheet."""
    data = []
    for _ in range(n_rows):
        model = np.random.choice(MODELS)
        data.append({
            'Make': '' if np.random.random() < 0.3 else ('Apple' if 'IPHONE' in model else 'Samsung'),
            'Model': DEVICE_MODELS[model],
            'Storage': f"{np.random.choice(CAPACITIES)}GB",
            'Color': np.random.choice(DEVICE_COLORS),
            'Carrier': np.random.choice(DEVICE_CARRIERS),
            'Notes': np.random.choice(DEVICE_NOTES),
        })
    return pd.DataFrame(data)


def benchmark_function(func, *args, **kwargs):
    """Benchmark a function and return (result, elapsed_ms)."""
    start = time.perf_counter()
    result = func(*args, **kwargs)
    elapsed_ms = (time.perf_counter() - start) * 1000
    return result, elapsed_ms


def benchmark_hot_paths(n_iterations: int = 10000):
    """Benchmark parse_sku_code() and normalize_color()."""
    print("\n" + "="*70)
    print("BENCHMARK: parse_sku_code() / normalize_color() - Hot Paths")
    print("="*70)

    codes = ['FOLD3-256-BLK-ATT-VG', 'S22-ULTRA-512GB-BLACK-AT&T', 'TAB-S8-ULTRA-128-BLK-WIFI', '123456789']
    for code in codes:
        start = time.perf_counter()
        for _ in range(n_iterations):
            _ = parse_sku_code(code)
        elapsed_ms = (time.perf_counter() - start) * 1000
        print(f"\nparse_sku_code({code!r})")
        print(f"  Per call: {elapsed_ms * 1000 / n_iterations:.2f}μs")

    for color in ['Phantom Black', 'Midnight Black', 'PHA']:
        start = time.perf_counter()
        for _ in range(n_iterations):
            _ = normalize_color(color)
        elapsed_ms = (time.perf_counter() - start) * 1000
        print(f"\nnormalize_color({color!r})")
        print(f"  Per call: {elapsed_ms * 1000 / n_iterations:.2f}μs")


def benchmark_run_matching(max_workers: int = 10):
    """Benchmark run_matching() end-to-end on 1k devices."""
    print("\n" + "="*70)
    print(f"BENCHMARK: run_matching() - 1k Devices, {max_workers} workers")
    print("="*70)

    print("\nGenerating 10k synthetic catalog...")
    (df_catalog, stats), clean_time = benchmark_function(clean_catalog, generate_synthetic_catalog(10000))
    print(f"  Cleanup: {clean_time:.2f}ms ({stats['original']} -> {stats['final']} SKUs)")
    store = DataFrameCatalogStore(df_catalog)

    df_devices = generate_synthetic_devices(1000)
    df_result, match_time = benchmark_function(run_matching, df_devices, store, max_workers=max_workers)

    print(f"  Matching time: {match_time:.2f}ms")
    print(f"  Per-item time: {match_time / len(df_devices):.2f}ms")
    print(f"  Throughput: {len(df_devices) / (match_time / 1000):.0f} items/sec")

    metrics = compute_coverage_metrics(df_result)
    print(f"\nMatch Results:")
    for method, count in metrics['method_breakdown'].items():
        print(f"  {method}: {count} ({count/metrics['total_rows']*100:.1f}%)")
    print(f"  Carrier overrides: {metrics['override_count']}")


def main():
    """Run all benchmarks."""
    np.random.seed(42)
    print("="*70)
    print("SKU RESOLVER PERFORMANCE BENCHMARK")
    print("="*70)

    benchmark_hot_paths(10000)
    benchmark_run_matching(max_workers=1)
    benchmark_run_matching(max_workers=10)

    print("\n" + "="*70)
    print("BENCHMARK COMPLETE")
    print("="*70)


if __name__ == '__main__':
    main()
