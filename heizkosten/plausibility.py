import logging
from decimal import Decimal
from statistics import median as _median
from typing import List

from .compliance import AREA_BAND, CONSUMPTION_BAND, SUM_TOLERANCE, in_band
from .datatypes import ApportionedLine, HeatBillingInput, PlausibilityFlag, PlausibilityReport

logger = logging.getLogger(__name__)

HIGH_FACTOR = Decimal('3')
LOW_FACTOR = Decimal('0.1')

# (family code, label used in messages, status attribute on the line)
_FAMILIES = [
    ('heizung', 'Heizverbrauch', 'heating_status'),
    ('warmwasser', 'Warmwasserverbrauch', 'hot_water_status'),
]


def median(values) -> Decimal:
    """Standard median; an empty list yields 0."""
    values = list(values)
    if not values:
        return Decimal(0)
    return Decimal(_median(values))


def analyze(billing_input: HeatBillingInput, lines: List[ApportionedLine]) -> PlausibilityReport:
    """
    Flag statistical outliers per unit and configuration anomalies per building.

    Unit flags are attached to their lines as well as collected in the report.
    Building flags carry an empty unit id.
    """
    flags = []
    for code, label, attr in _FAMILIES:
        readings = [getattr(l, attr).reading for l in lines if getattr(l, attr).is_valid]
        med = median(readings)
        logger.debug(f"Median {code}: {med} over {len(readings)} readings")
        if med <= 0:
            continue
        for line in lines:
            status = getattr(line, attr)
            if not status.is_valid:
                continue
            for flag in _outlier_flags(line.unit_id, code, label, status.reading, med):
                line.plausibility_flags.append(flag)

    for line in lines:
        flags.extend(line.plausibility_flags)
    flags.extend(_building_flags(billing_input))

    if flags:
        logger.info(f"Plausibility check raised {len(flags)} flag(s)")
    return PlausibilityReport(flags=flags)


def _outlier_flags(unit_id, code, label, value, med):
    if value > med * HIGH_FACTOR:
        yield PlausibilityFlag(
            unit_id, f'{code}_hoch',
            f'{label} {value} liegt über dem 3-fachen des Medians ({med:.2f})')
    if value < med * LOW_FACTOR:
        yield PlausibilityFlag(
            unit_id, f'{code}_niedrig',
            f'{label} {value} liegt unter 10% des Medians ({med:.2f})')


def _building_flags(billing_input: HeatBillingInput) -> List[PlausibilityFlag]:
    units = billing_input.units
    cfg = billing_input.config
    flags = []

    if sum((u.area_m2 for u in units), Decimal(0)) <= 0:
        flags.append(PlausibilityFlag('', 'gesamtflaeche', 'Gesamtfläche ist 0 oder negativ'))

    present = [u.heating_meter.value for u in units if u.heating_meter is not None and u.heating_meter.value > 0]
    if present and sum(present, Decimal(0)) <= 0:
        flags.append(PlausibilityFlag(
            '', 'gesamtverbrauch', 'Gesamtverbrauch Heizung ist 0 trotz vorhandener Messgeräte'))

    pairs = [
        ('heizung', 'Heizung', cfg.heating_consumption_pct, cfg.heating_area_pct),
        ('warmwasser', 'Warmwasser', cfg.hot_water_consumption_pct, cfg.hot_water_area_pct),
    ]
    for code, label, consumption, area in pairs:
        if abs(consumption + area - 100) >= SUM_TOLERANCE:
            flags.append(PlausibilityFlag(
                '', f'aufteilung_{code}',
                f'{label}: Verbrauchsanteil ({consumption}%) + Flächenanteil ({area}%) ergibt nicht 100%'))

    for code, label, consumption, area in pairs:
        if not in_band(consumption, CONSUMPTION_BAND):
            flags.append(_band_flag(f'{label} Verbrauchsanteil', consumption, CONSUMPTION_BAND))
        if not in_band(area, AREA_BAND):
            flags.append(_band_flag(f'{label} Flächenanteil', area, AREA_BAND))

    return flags


def _band_flag(label, pct, band):
    low, high = band
    return PlausibilityFlag(
        '', 'heizkg_bereich',
        f'{label} {pct}% liegt außerhalb des HeizKG-Bereichs ({low}–{high}%)')
