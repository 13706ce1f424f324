from decimal import Decimal

import pytest

from heizkosten import allocator, plausibility
from heizkosten.config import build_input

from conftest import make_input, make_payload


def _analyze(billing_input):
    lines, _ = allocator.allocate(billing_input)
    return lines, plausibility.analyze(billing_input, lines)


def _kinds(flags):
    return [f.kind for f in flags]


@pytest.mark.parametrize('values, expected', [
    ([], Decimal('0')),
    ([Decimal('7')], Decimal('7')),
    ([Decimal('300'), Decimal('100'), Decimal('200')], Decimal('200')),
    ([Decimal('250'), Decimal('100'), Decimal('200'), Decimal('150')], Decimal('175')),
])
def test_median(values, expected):
    assert plausibility.median(values) == expected


def test_reference_building_is_plausible(base_input):
    lines, report = _analyze(base_input)
    assert report.passed
    assert report.flags == []
    assert all(line.plausibility_flags == [] for line in lines)


def test_heating_outliers_are_flagged_on_the_line():
    units = [
        {'unitId': 'low', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 5},
         'hotWaterMeter': {'value': 30}, 'prepayment': 0},
        {'unitId': 'a', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 30}, 'prepayment': 0},
        {'unitId': 'b', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 30}, 'prepayment': 0},
        {'unitId': 'high', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 1000},
         'hotWaterMeter': {'value': 30}, 'prepayment': 0},
    ]
    lines, report = _analyze(make_input(units=units))
    by_unit = {line.unit_id: line for line in lines}

    assert not report.passed
    assert _kinds(by_unit['low'].plausibility_flags) == ['heizung_niedrig']
    assert _kinds(by_unit['high'].plausibility_flags) == ['heizung_hoch']
    assert by_unit['a'].plausibility_flags == []
    assert report.flags[0].unit_id == 'low'
    assert '(100.00)' in report.flags[0].message


def test_hot_water_outlier():
    units = [
        {'unitId': 'a', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 10}, 'prepayment': 0},
        {'unitId': 'b', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 10}, 'prepayment': 0},
        {'unitId': 'c', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 31}, 'prepayment': 0},
    ]
    _, report = _analyze(make_input(units=units))
    assert [(f.unit_id, f.kind) for f in report.flags] == [('c', 'warmwasser_hoch')]


def test_missing_meters_are_not_outliers():
    units = [
        {'unitId': 'a', 'areaM2': 50, 'heatingMeter': None, 'prepayment': 0},
        {'unitId': 'b', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 10}, 'prepayment': 0},
    ]
    lines, report = _analyze(make_input(units=units))
    assert lines[0].plausibility_flags == []
    assert report.passed


def test_split_not_summing_to_100():
    _, report = _analyze(make_input(config={'heatingConsumptionSharePct': 60, 'heatingAreaSharePct': 35}))
    assert _kinds(report.flags) == ['aufteilung_heizung']
    assert all(f.unit_id == '' for f in report.flags)


def test_split_outside_statutory_band():
    _, report = _analyze(make_input(config={
        'heatingConsumptionSharePct': 50, 'heatingAreaSharePct': 50,
        'hotWaterConsumptionSharePct': 70, 'hotWaterAreaSharePct': 30,
    }))
    assert _kinds(report.flags) == ['heizkg_bereich'] * 4
    assert 'Heizung Verbrauchsanteil 50%' in report.flags[0].message


def test_zero_total_area_flag():
    units = [{'unitId': 'a', 'areaM2': 0, 'heatingMeter': {'type': 'hkv', 'value': 10},
              'hotWaterMeter': {'value': 10}, 'prepayment': 0}]
    _, report = _analyze(make_input(units=units))
    assert _kinds(report.flags) == ['gesamtflaeche']


def test_meters_reading_zero_do_not_count_as_present():
    units = [
        {'unitId': 'a', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 0},
         'hotWaterMeter': {'value': 0}, 'prepayment': 0},
        {'unitId': 'b', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 0}, 'prepayment': 0},
    ]
    _, report = _analyze(build_input(make_payload(units=units)))
    assert report.passed
    assert 'gesamtverbrauch' not in _kinds(report.flags)
