"""
Similarity scorer: field comparisons, carrier-aware scoring and the
post-weighting adjustments.
"""
import pytest

from sku_matcher.models import DeviceAttributes
from sku_matcher.scorer import (
    compare_field,
    score,
    score_breakdown,
    score_carrier,
    score_color,
    score_model,
)
from sku_matcher.sku_codes import parse_sku_code


@pytest.mark.parametrize("a, b, expected", [
    ('BLK', 'blk', 1.0),
    ('s22', 's22ultra', 0.8),
    ('s22ultra', 's22', 0.8),
    ('', 'samsung', 0.5),
    ('Unknown', 'Unknown', 0.5),
    ('BLK', 'BLACK', 0.6),
    ('BLK', 'WHT', 0.0),
])
def test_compare_field(a, b, expected):
    assert compare_field(a, b) == expected


@pytest.mark.parametrize("device_color, sku_color, expected", [
    ('Phantom Black', 'BLK', 1.0),
    ('PHA', 'BLK', 0.0),
    ('Black', 'UNKNOWN', 0.0),
    (None, 'BLK', 0.5),
    ('White', 'BLK', 0.0),
])
def test_score_color(device_color, sku_color, expected):
    assert score_color(device_color, sku_color) == expected


def test_score_model_exact_and_substring():
    assert score_model('Galaxy Z Fold3 Duos', 'FOLD3') == 1.0
    assert score_model('Galaxy S22', 'S22-ULTRA') == 0.8


def test_score_model_near_miss_gets_graded_credit():
    near = score_model('Galaxy S22 Ultra', 'S23-ULTRA')
    far = score_model('Galaxy Z Fold3', 'PIXEL7')
    assert 0.3 < near < 0.6
    assert far < near


@pytest.mark.parametrize("device_carrier, code, unlocked, expected", [
    ('Unlocked', 'FOLD3-512-BLK', True, 1.0),
    ('Unlocked', 'IPHONE14PRO-256GB-BLK-UNL', True, 1.0),
    ('Unlocked', 'FOLD3-512-BLK-ATT', True, 0.1),
    ('AT&T', 'FOLD3-512-BLK-ATT', False, 1.0),
    ('AT&T', 'FOLD3-512-BLK', False, 0.1),
    ('AT&T', 'IPHONE14PRO-256GB-BLK-UNL', False, 0.1),
    ('AT&T', 'FOLD3-512-BLK-VRZ', False, 0.2),
    ('US Cellular', 'FOLD3-512-BLK-USC', False, 0.6),
    ('AT&T', '123456789', False, 0.1),
])
def test_score_carrier(device_carrier, code, unlocked, expected):
    assert score_carrier(device_carrier, parse_sku_code(code), unlocked) == expected


def test_perfect_match_scores_one():
    device = DeviceAttributes(model='FOLD3', brand='Samsung', capacity='512GB', color='BLK', carrier='Unlocked')
    assert score(device, parse_sku_code('FOLD3-512-BLK'), True) == 1.0


def test_base_sku_nudge():
    device = DeviceAttributes(model='Galaxy Z Fold3', brand='Samsung', capacity='256GB', color='Black', carrier='AT&T')
    base = score(device, parse_sku_code('FOLD3-512-WHT-ATT'), False)
    variant = score(device, parse_sku_code('FOLD3-512-WHT-ATT-VG'), False)
    assert base - variant == pytest.approx(0.001, abs=1e-9)


def test_model_penalty_applies_to_wrong_model():
    device = DeviceAttributes(model='Pixel 7', capacity='512GB', color='Black', carrier='Unlocked')
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-BLK'), True)
    assert breakdown['model'] < 0.3
    assert breakdown['model_penalty'] < breakdown['weighted']


def test_three_field_sku_penalised_for_carrier_bound_device():
    device = DeviceAttributes(model='FOLD3', brand='Samsung', capacity='512GB', color='BLK', carrier='AT&T')
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-BLK'), False)
    assert breakdown['carrier'] == 0.1
    assert breakdown['weighted'] == pytest.approx(0.595)
    assert breakdown['field_count'] == pytest.approx(0.595 * 0.4)


def test_four_field_strong_carrier_bonus():
    device = DeviceAttributes(model='Galaxy Z Fold3', brand='Samsung', capacity='256GB', color='Black', carrier='AT&T')
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-WHT-ATT'), False)
    assert breakdown['weighted'] == pytest.approx(0.75)
    assert breakdown['field_count'] == pytest.approx(0.75 * 1.25)


def test_stub_candidate_scores_low():
    device = DeviceAttributes(model='FOLD3', brand='Samsung', capacity='512GB', color='BLK', carrier='AT&T')
    assert score(device, parse_sku_code('123456789'), False) < 0.5


@pytest.mark.parametrize("device", [
    DeviceAttributes(model='FOLD3'),
    DeviceAttributes(model='Galaxy Z Fold3', color='PHA', carrier='AT&T'),
    DeviceAttributes(model='x', brand='???', capacity='huge', color='', carrier='Cricket'),
])
@pytest.mark.parametrize("code", ['FOLD3-512-BLK', 'FOLD3-256-BLK-ATT-VG', 'TAB-S8-ULTRA-128-BLK-WIFI', '123456789'])
def test_score_is_bounded(device, code):
    for unlocked in (True, False):
        value = score(device, parse_sku_code(code), unlocked)
        assert 0.0 <= value <= 1.0


# Galaxy Z Fold3 against FOLD3-512-WHT-*: brand and model agree, capacity and
# color do not, so the weighted score is 0.30 + 0.45 * carrier.
FOLD3_256_BLACK = dict(model='Galaxy Z Fold3', brand='Samsung', capacity='256GB', color='Black')


def test_four_field_good_carrier_bonus():
    device = DeviceAttributes(carrier='AT&T', **FOLD3_256_BLACK)
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-WHT-ATANDT'), False)
    assert breakdown['carrier'] == 0.8
    assert breakdown['weighted'] == pytest.approx(0.66)
    assert breakdown['field_count'] == pytest.approx(0.66 * 1.15)


def test_four_field_weak_carrier_halved():
    device = DeviceAttributes(carrier='AT&T', **FOLD3_256_BLACK)
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-WHT-VRZ'), False)
    assert breakdown['carrier'] == 0.2
    assert breakdown['weighted'] == pytest.approx(0.39)
    assert breakdown['field_count'] == pytest.approx(0.39 * 0.5)


def test_three_field_unlocked_bonus():
    device = DeviceAttributes(carrier='Unlocked', **FOLD3_256_BLACK)
    breakdown = score_breakdown(device, parse_sku_code('FOLD3-512-WHT'), True)
    assert breakdown['carrier'] == 1.0
    assert breakdown['weighted'] == pytest.approx(0.75)
    assert breakdown['field_count'] == pytest.approx(0.75 * 1.2)


def test_weak_model_penalty():
    device = DeviceAttributes(model='Galaxy Z Fold3', brand='Samsung', capacity='256GB', color='Black',
                              carrier='Unlocked')
    breakdown = score_breakdown(device, parse_sku_code('FOLD4-256-BLK'), True)
    model = breakdown['model']
    assert model == pytest.approx(0.48)
    assert breakdown['model_penalty'] == pytest.approx(breakdown['weighted'] * (1 - 0.4 * (1 - model)))
