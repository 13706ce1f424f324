from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
import logging
from .datatypes import (
    AllocationConfig,
    ApportionedLine,
    CostTotals,
    HeatBillingInput,
    MeterStatus,
    MeterStatusKind,
    UnitInput,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')

_REASONS = {
    MeterStatusKind.MISSING: 'Keine Messdaten vorhanden – Ersatzverteilung nach Fläche gemäß §12 HeizKG',
    MeterStatusKind.ZERO_READING: 'Messwert 0 – Ersatzverteilung nach Fläche gemäß §12 HeizKG',
}


@dataclass(frozen=True)
class CostPools:
    heating_consumption: Decimal
    heating_area: Decimal
    hot_water_consumption: Decimal
    hot_water_area: Decimal


def split_pools(costs: CostTotals, config: AllocationConfig) -> CostPools:
    """
    Split heating and hot water supply costs into consumption and area pools.

    Percentages are applied as given; a split that does not add up to 100 is
    reported by the plausibility analyzer, not corrected here. Pools stay
    unrounded, rounding happens per unit.
    """
    return CostPools(
        heating_consumption=costs.heating_supply * config.heating_consumption_pct / HUNDRED,
        heating_area=costs.heating_supply * config.heating_area_pct / HUNDRED,
        hot_water_consumption=costs.hot_water_supply * config.hot_water_consumption_pct / HUNDRED,
        hot_water_area=costs.hot_water_supply * config.hot_water_area_pct / HUNDRED,
    )


def estimation_reason(status: MeterStatus) -> str:
    return _REASONS[status.kind]


def allocate(billing_input: HeatBillingInput) -> tuple[list[ApportionedLine], list[str]]:
    """
    Apportion all four cost categories onto the units.

    Returns one line per input unit (input order preserved) with every share
    already rounded to cents, plus the building-level warnings about substitute
    distribution. Rest cents are left for the reconciler.
    """
    units = billing_input.units
    costs = billing_input.costs
    pools = split_pools(costs, billing_input.config)
    logger.debug(f"Pools for run {billing_input.run_id}: {pools}")

    total_area = sum((u.area_m2 for u in units), ZERO)
    unit_count = len(units)

    heating_status = [MeterStatus.classify(u.heating_meter) for u in units]
    hot_water_status = [MeterStatus.classify(u.hot_water_meter) for u in units]
    total_heating = _total_reading(heating_status)
    total_hot_water = _total_reading(hot_water_status)
    has_hot_water = costs.hot_water_supply > 0

    warnings = []
    for unit, status in zip(units, heating_status):
        if status.uses_fallback:
            warnings.append(_fallback_warning(unit, status, 'Heizungs'))
    if has_hot_water:
        for unit, status in zip(units, hot_water_status):
            if status.uses_fallback:
                warnings.append(_fallback_warning(unit, status, 'Warmwasser'))

    # Meter reading fee is an equal split, independent of area and consumption
    meter_reading_share = round2(costs.meter_reading / Decimal(unit_count)) if unit_count else ZERO

    lines = []
    for unit, h_status, w_status in zip(units, heating_status, hot_water_status):
        line = _new_line(unit, h_status, w_status)

        # Rule A – heating: consumption by meter, §12 fallback by area
        line.heating_consumption_share = _consumption_share(
            pools.heating_consumption, h_status, total_heating, unit.area_m2, total_area)
        line.heating_area_share = _by_area(pools.heating_area, unit.area_m2, total_area)
        line.heating_total = line.heating_consumption_share + line.heating_area_share
        if h_status.uses_fallback:
            _mark_estimated(line, h_status)

        # Rule B – hot water: same split; nothing to estimate without hot water costs
        line.hot_water_consumption_share = _consumption_share(
            pools.hot_water_consumption, w_status, total_hot_water, unit.area_m2, total_area)
        line.hot_water_area_share = _by_area(pools.hot_water_area, unit.area_m2, total_area)
        line.hot_water_total = line.hot_water_consumption_share + line.hot_water_area_share
        if w_status.uses_fallback and has_hot_water:
            _mark_estimated(line, w_status)

        # Rule C – maintenance by area, Rule D – meter reading per unit
        line.maintenance_share = _by_area(costs.maintenance, unit.area_m2, total_area)
        line.meter_reading_share = meter_reading_share

        line.total_cost = (line.heating_total + line.hot_water_total
                           + line.maintenance_share + line.meter_reading_share)
        line.balance = round2(line.total_cost - line.prepayment)
        lines.append(line)

    estimated = sum(1 for line in lines if line.is_estimated)
    logger.info(f"Apportioned {unit_count} units ({estimated} with substitute distribution)")
    return lines, warnings

# -------------------- helpers --------------------

def _total_reading(statuses):
    return sum((s.reading for s in statuses if s.is_valid), ZERO)


def _by_area(amount, area, total_area):
    # amount * area / total, never amount * (area / total)
    if total_area <= 0:
        return ZERO
    return round2(amount * area / total_area)


def _consumption_share(pool, status, total_reading, area, total_area):
    if status.uses_fallback:
        return _by_area(pool, area, total_area)
    if total_reading <= 0:
        return ZERO
    return round2(pool * status.reading / total_reading)


def _mark_estimated(line, status):
    line.is_estimated = True
    # first observed reason wins
    if not line.estimation_reason:
        line.estimation_reason = estimation_reason(status)


def _fallback_warning(unit: UnitInput, status: MeterStatus, family: str) -> str:
    if status.kind is MeterStatusKind.ZERO_READING:
        return f'Einheit {unit.unit_id}: {family}-Messwert 0 – Ersatzverteilung nach Fläche gemäß §12 HeizKG'
    return f'Einheit {unit.unit_id}: Keine {family}-Messdaten – Ersatzverteilung nach Fläche gemäß §12 HeizKG'


def _new_line(unit: UnitInput, h_status: MeterStatus, w_status: MeterStatus) -> ApportionedLine:
    return ApportionedLine(
        unit_id=unit.unit_id,
        area_m2=unit.area_m2,
        occupancy=unit.occupancy,
        prepayment=unit.prepayment,
        heating_status=h_status,
        hot_water_status=w_status,
        mea=unit.mea,
        tenant_name=unit.tenant_name,
        heating_meter_kind=unit.heating_meter.kind if unit.heating_meter else None,
        heating_meter_value=unit.heating_meter.value if unit.heating_meter else None,
        hot_water_meter_value=unit.hot_water_meter.value if unit.hot_water_meter else None,
    )


def round2(x) -> Decimal:
    """Commercial rounding to cents (half away from zero)."""
    return Decimal(x).quantize(Decimal('0.01'), ROUND_HALF_UP)


