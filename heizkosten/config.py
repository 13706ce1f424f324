"""
Configuration and input loading.

Builds a validated HeatBillingInput from the payload the settlement layer
hands over (camelCase keys, as stored with a billing run). Structural problems
are rejected here with HeatBillingInputError; the engine itself assumes
well-formed input.
"""
import json
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .datatypes import (
    AllocationConfig,
    BillingPeriod,
    CostTotals,
    HeatBillingInput,
    HeatingMeter,
    HotWaterMeter,
    MeterKind,
    RestCentRule,
    RoundingMethod,
    UnitInput,
)

logger = logging.getLogger(__name__)

CFG_PATH = Path(__file__).parent / 'data' / 'defaults.yaml'

_config_cache = None

# payload key → AllocationConfig field
_PCT_KEYS = {
    'heatingConsumptionSharePct': 'heating_consumption_pct',
    'heatingAreaSharePct': 'heating_area_pct',
    'hotWaterConsumptionSharePct': 'hot_water_consumption_pct',
    'hotWaterAreaSharePct': 'hot_water_area_pct',
}


class HeatBillingInputError(ValueError):
    """Billing input is structurally invalid and must not reach the engine."""


def _load_defaults() -> Dict[str, Any]:
    global _config_cache
    if _config_cache is None:
        logger.debug(f"Loading allocation defaults from {CFG_PATH}")
        _config_cache = yaml.safe_load(CFG_PATH.read_text(encoding='utf-8'))
    return _config_cache


def load_default_config() -> AllocationConfig:
    """Default allocation keys from the packaged defaults.yaml"""
    body = _load_defaults()['allocation']
    return AllocationConfig(
        heating_consumption_pct=_number(body['heating_consumption_pct'], 'heating_consumption_pct'),
        heating_area_pct=_number(body['heating_area_pct'], 'heating_area_pct'),
        hot_water_consumption_pct=_number(body['hot_water_consumption_pct'], 'hot_water_consumption_pct'),
        hot_water_area_pct=_number(body['hot_water_area_pct'], 'hot_water_area_pct'),
        rest_cent_rule=_enum(RestCentRule, body['rest_cent_rule'], 'rest_cent_rule'),
        rounding_method=_enum(RoundingMethod, body['rounding_method'], 'rounding_method'),
    )


def load_input(path: Path) -> HeatBillingInput:
    """Read a billing input payload from a yaml or json file."""
    path = Path(path)
    text = path.read_text(encoding='utf-8')
    if path.suffix.lower() == '.json':
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HeatBillingInputError(f'{path}: invalid JSON ({exc})') from exc
    else:
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise HeatBillingInputError(f'{path}: invalid YAML ({exc})') from exc
    if not isinstance(payload, dict):
        raise HeatBillingInputError(f'{path}: expected a mapping at top level')
    logger.info(f"Loaded billing input from {path}")
    return build_input(payload)


def build_input(payload: Dict[str, Any]) -> HeatBillingInput:
    """
    Validate a caller payload and turn it into a HeatBillingInput.

    Optional cost categories default to 0, missing allocation keys to the
    packaged defaults.
    """
    period = _period(_require(payload, 'periodFrom'), _require(payload, 'periodTo'))

    raw_costs = _require(payload, 'totalCosts')
    costs = CostTotals(
        heating_supply=_cost(_require(raw_costs, 'heatingSupply', 'totalCosts'), 'totalCosts.heatingSupply'),
        hot_water_supply=_cost(raw_costs.get('hotWaterSupply'), 'totalCosts.hotWaterSupply'),
        maintenance=_cost(raw_costs.get('maintenance'), 'totalCosts.maintenance'),
        meter_reading=_cost(raw_costs.get('meterReadingCost'), 'totalCosts.meterReadingCost'),
    )

    raw_units = _require(payload, 'units')
    if not isinstance(raw_units, list) or not raw_units:
        raise HeatBillingInputError('units: at least one unit is required')
    units = [_unit(raw, idx) for idx, raw in enumerate(raw_units)]
    seen = set()
    for unit in units:
        if unit.unit_id in seen:
            raise HeatBillingInputError(f'units: duplicate unitId {unit.unit_id!r}')
        seen.add(unit.unit_id)

    return HeatBillingInput(
        run_id=_integer(payload.get('runId'), 'runId', default=0),
        property_id=str(payload.get('propertyId') or ''),
        period=period,
        costs=costs,
        config=_allocation_config(payload.get('config') or {}),
        units=units,
    )

# -------------------- helpers --------------------

def _require(mapping, key, where=None):
    if not isinstance(mapping, dict) or mapping.get(key) is None:
        name = f'{where}.{key}' if where else key
        raise HeatBillingInputError(f'{name} is required')
    return mapping[key]


def _number(value, name) -> Decimal:
    if isinstance(value, bool):
        raise HeatBillingInputError(f'{name}: expected a number, got {value!r}')
    try:
        # str() first so floats keep their printed value, not the binary one
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise HeatBillingInputError(f'{name}: expected a number, got {value!r}') from None
    if not number.is_finite():
        raise HeatBillingInputError(f'{name}: must be finite, got {value!r}')
    return number


def _integer(value, name, default) -> int:
    if value is None:
        return default
    number = _number(value, name)
    if number != number.to_integral_value() or number < 0:
        raise HeatBillingInputError(f'{name}: expected a non-negative whole number, got {value!r}')
    return int(number)


def _mapping(value, name) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise HeatBillingInputError(f'{name}: expected a mapping, got {value!r}')
    return value


def _cost(value, name) -> Decimal:
    if value is None:
        return Decimal('0.00')
    amount = _number(value, name)
    if amount < 0:
        raise HeatBillingInputError(f'{name}: must not be negative, got {value!r}')
    return amount


def _enum(enum_cls, value, name):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(m.value for m in enum_cls)
        raise HeatBillingInputError(f'{name}: unknown value {value!r} (allowed: {allowed})') from None


def _period(start, end) -> BillingPeriod:
    start, end = _date(start, 'periodFrom'), _date(end, 'periodTo')
    if start >= end:
        raise HeatBillingInputError(f'periodFrom {start} must lie before periodTo {end}')
    return BillingPeriod(start, end)


def _date(value, name) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise HeatBillingInputError(f'{name}: expected an ISO date, got {value!r}') from None


def _allocation_config(raw: Dict[str, Any]) -> AllocationConfig:
    defaults = load_default_config()
    kwargs = {}
    for key, attr in _PCT_KEYS.items():
        if raw.get(key) is None:
            kwargs[attr] = getattr(defaults, attr)
        else:
            kwargs[attr] = _number(raw[key], f'config.{key}')
    kwargs['rest_cent_rule'] = _enum(
        RestCentRule, raw.get('restCentRule') or defaults.rest_cent_rule.value, 'config.restCentRule')
    kwargs['rounding_method'] = _enum(
        RoundingMethod, raw.get('roundingMethod') or defaults.rounding_method.value, 'config.roundingMethod')
    return AllocationConfig(**kwargs)


def _unit(raw, idx) -> UnitInput:
    where = f'units[{idx}]'
    if not isinstance(raw, dict):
        raise HeatBillingInputError(f'{where}: expected a mapping')
    area = _number(_require(raw, 'areaM2', where), f'{where}.areaM2')
    if area < 0:
        raise HeatBillingInputError(f'{where}.areaM2: must not be negative')

    heating_meter = None
    if raw.get('heatingMeter'):
        meter = _mapping(raw['heatingMeter'], f'{where}.heatingMeter')
        heating_meter = HeatingMeter(
            kind=_enum(MeterKind, meter.get('type') or MeterKind.HKV.value, f'{where}.heatingMeter.type'),
            value=_number(_require(meter, 'value', f'{where}.heatingMeter'), f'{where}.heatingMeter.value'),
        )
    hot_water_meter = None
    if raw.get('hotWaterMeter'):
        meter = _mapping(raw['hotWaterMeter'], f'{where}.hotWaterMeter')
        hot_water_meter = HotWaterMeter(
            value=_number(_require(meter, 'value', f'{where}.hotWaterMeter'), f'{where}.hotWaterMeter.value'))

    mea: Optional[Decimal] = None
    if raw.get('mea') is not None:
        mea = _number(raw['mea'], f'{where}.mea')

    return UnitInput(
        unit_id=str(_require(raw, 'unitId', where)),
        area_m2=area,
        prepayment=_number(raw.get('prepayment') or 0, f'{where}.prepayment'),
        mea=mea,
        occupancy=_integer(raw.get('occupancy'), f'{where}.occupancy', default=1),
        heating_meter=heating_meter,
        hot_water_meter=hot_water_meter,
        tenant_name=raw.get('tenantName') or None,
    )
