"""
Shared billing payloads.

The base payload is the three-unit building used throughout the tests:
areas 50/70/80 m², heating meters 100/150/200, hot water meters 30/50/70,
costs 10000/5000/3000/300 and 65/35 keys for both families.
"""
import copy
from datetime import date

import pytest

from heizkosten.config import build_input

TODAY = date(2026, 3, 1)   # well inside the §14 deadline of the 2025 period

BASE_PAYLOAD = {
    'runId': 1,
    'propertyId': 'prop-1',
    'periodFrom': '2025-01-01',
    'periodTo': '2025-12-31',
    'totalCosts': {
        'heatingSupply': 10000,
        'hotWaterSupply': 5000,
        'maintenance': 3000,
        'meterReadingCost': 300,
    },
    'config': {
        'heatingConsumptionSharePct': 65,
        'heatingAreaSharePct': 35,
        'hotWaterConsumptionSharePct': 65,
        'hotWaterAreaSharePct': 35,
        'roundingMethod': 'kaufmaennisch',
        'restCentRule': 'assign_to_largest_share',
    },
    'units': [
        {'unitId': 'u1', 'areaM2': 50, 'heatingMeter': {'type': 'hkv', 'value': 100},
         'hotWaterMeter': {'value': 30}, 'prepayment': 1500},
        {'unitId': 'u2', 'areaM2': 70, 'heatingMeter': {'type': 'hkv', 'value': 150},
         'hotWaterMeter': {'value': 50}, 'prepayment': 2000},
        {'unitId': 'u3', 'areaM2': 80, 'heatingMeter': {'type': 'hkv', 'value': 200},
         'hotWaterMeter': {'value': 70}, 'prepayment': 2500},
    ],
}

# 1000 EUR heating over three equal meters: per-unit rounding leaves one cent
REST_CENT_UNITS = [
    {'unitId': 'u1', 'areaM2': 33, 'heatingMeter': {'type': 'hkv', 'value': 100}, 'prepayment': 0},
    {'unitId': 'u2', 'areaM2': 33, 'heatingMeter': {'type': 'hkv', 'value': 100}, 'prepayment': 0},
    {'unitId': 'u3', 'areaM2': 34, 'heatingMeter': {'type': 'hkv', 'value': 100}, 'prepayment': 0},
]
HEATING_ONLY_COSTS = {'heatingSupply': 1000, 'hotWaterSupply': 0, 'maintenance': 0, 'meterReadingCost': 0}


def make_payload(**overrides) -> dict:
    payload = copy.deepcopy(BASE_PAYLOAD)
    for key, value in overrides.items():
        if key == 'config':
            payload['config'].update(value)
        else:
            payload[key] = copy.deepcopy(value)
    return payload


def make_input(**overrides):
    return build_input(make_payload(**overrides))


@pytest.fixture()
def base_input():
    return make_input()


@pytest.fixture()
def rest_cent_input():
    return make_input(totalCosts=HEATING_ONLY_COSTS, units=REST_CENT_UNITS)
