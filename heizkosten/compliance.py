"""
HeizKG compliance checklist.

The checklist is the fixed, ordered enumeration `Paragraph`; every member has
exactly one evaluator in `_EVALUATORS` and all of them run, except the hot
water §8 check which only applies when hot water costs are billed.
"""
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from .datatypes import (
    ApportionedLine,
    ComplianceCheck,
    ComplianceCheckResult,
    ComplianceStatus,
    HeatBillingInput,
)

logger = logging.getLogger(__name__)

CONSUMPTION_BAND = (Decimal('55'), Decimal('65'))
AREA_BAND = (Decimal('35'), Decimal('45'))
SUM_TOLERANCE = Decimal('0.01')
MAX_PERIOD_MONTHS = 12
DEADLINE_MONTHS = 15

OK = ComplianceStatus.OK
WARNING = ComplianceStatus.WARNING
ERROR = ComplianceStatus.ERROR


class Paragraph(str, Enum):
    SEPARATE_DISPLAY = '§5 HeizKG'
    METERING = '§7 HeizKG'
    HEATING_SPLIT = '§8 HeizKG'
    HOT_WATER_SPLIT = '§8 HeizKG (Warmwasser)'
    PERIOD = '§9 HeizKG'
    KEYS = '§10 HeizKG'
    SUBSTITUTE = '§12 HeizKG'
    DEADLINE = '§14 HeizKG'


def in_band(pct, band) -> bool:
    low, high = band
    return low <= pct <= high


def split_conforms(consumption, area) -> bool:
    return (in_band(consumption, CONSUMPTION_BAND)
            and in_band(area, AREA_BAND)
            and abs(consumption + area - 100) < SUM_TOLERANCE)


def deadline(period_end: date) -> date:
    """Statutory settlement deadline, 15 months after the period end."""
    return period_end + relativedelta(months=DEADLINE_MONTHS)


class _Context:
    def __init__(self, billing_input, lines, today):
        self.input = billing_input
        self.cfg = billing_input.config
        self.costs = billing_input.costs
        self.lines = lines
        self.today = today
        self.estimated = [l for l in lines if l.is_estimated]
        self.has_hot_water = self.costs.hot_water_supply > 0

    @property
    def all_documented(self) -> bool:
        return all(bool(l.estimation_reason) for l in self.estimated)


def _check_separate_display(ctx):
    status = OK if ctx.has_hot_water or ctx.costs.heating_supply > 0 else WARNING
    details = ('Heizung und Warmwasser werden getrennt ausgewiesen' if ctx.has_hot_water
               else 'Nur Heizkosten vorhanden – separate Warmwasserabrechnung nicht erforderlich')
    return 'Getrennte Ausweisung von Heizung und Warmwasser', status, details


def _check_metering(ctx):
    requirement = 'Messgeräte vorhanden oder Ersatzverteilung dokumentiert'
    if not ctx.estimated:
        return requirement, OK, 'Alle Einheiten haben gültige Messdaten'
    documented = ctx.all_documented
    details = (f'{len(ctx.estimated)} Einheit(en) ohne Messdaten – Ersatzverteilung '
               f'{"dokumentiert" if documented else "NICHT dokumentiert"}')
    return requirement, WARNING if documented else ERROR, details


def _split_check(label, consumption, area):
    ok = split_conforms(consumption, area)
    details = (f'{label}: Verbrauch {consumption}% / Fläche {area}% '
               f'(Summe {consumption + area:.0f}%) – {"konform" if ok else "NICHT konform"}')
    return OK if ok else ERROR, details


def _check_heating_split(ctx):
    status, details = _split_check('Heizung', ctx.cfg.heating_consumption_pct, ctx.cfg.heating_area_pct)
    return 'Verbrauchsanteil 55–65%, Flächenanteil 35–45%', status, details


def _check_hot_water_split(ctx):
    if not ctx.has_hot_water:
        return None
    status, details = _split_check('Warmwasser', ctx.cfg.hot_water_consumption_pct, ctx.cfg.hot_water_area_pct)
    return 'Warmwasser-Verbrauchsanteil 55–65%, Flächenanteil 35–45%', status, details


def _check_period(ctx):
    period = ctx.input.period
    months = period.months()
    status = OK if months <= MAX_PERIOD_MONTHS else ERROR
    details = f'Abrechnungszeitraum: {months} Monate ({period.start.isoformat()} bis {period.end.isoformat()})'
    return 'Abrechnungszeitraum maximal 12 Monate', status, details


def _check_keys(ctx):
    cfg = ctx.cfg
    details = (f'Heizung: {cfg.heating_consumption_pct}% Verbrauch / {cfg.heating_area_pct}% Fläche | '
               f'Warmwasser: {cfg.hot_water_consumption_pct}% Verbrauch / {cfg.hot_water_area_pct}% Fläche | '
               'Instandhaltung: nach Fläche | Ablesungskosten: pro Einheit')
    return 'Verteilungsschlüssel dokumentiert', OK, details


def _check_substitute(ctx):
    requirement = 'Ersatzverteilung bei fehlenden Messdaten'
    if not ctx.estimated:
        return requirement, OK, 'Keine Ersatzverteilung erforderlich'
    status = OK if ctx.all_documented else ERROR
    return requirement, status, f'{len(ctx.estimated)} Einheit(en) mit Ersatzverteilung nach Fläche'


def _check_deadline(ctx):
    due = deadline(ctx.input.period.end)
    kept = ctx.today <= due
    details = f'Frist: {due.isoformat()} – {"eingehalten" if kept else "ÜBERSCHRITTEN"}'
    return 'Frist für Abrechnung (15 Monate nach Periodenende)', OK if kept else ERROR, details


_EVALUATORS = {
    Paragraph.SEPARATE_DISPLAY: _check_separate_display,
    Paragraph.METERING: _check_metering,
    Paragraph.HEATING_SPLIT: _check_heating_split,
    Paragraph.HOT_WATER_SPLIT: _check_hot_water_split,
    Paragraph.PERIOD: _check_period,
    Paragraph.KEYS: _check_keys,
    Paragraph.SUBSTITUTE: _check_substitute,
    Paragraph.DEADLINE: _check_deadline,
}


def check(billing_input: HeatBillingInput, lines: List[ApportionedLine],
          today: Optional[date] = None) -> ComplianceCheckResult:
    """Evaluate every paragraph of the checklist in order."""
    ctx = _Context(billing_input, lines, today or date.today())
    checks = []
    for paragraph in Paragraph:
        outcome = _EVALUATORS[paragraph](ctx)
        if outcome is None:
            continue
        requirement, status, details = outcome
        checks.append(ComplianceCheck(paragraph.value, requirement, status, details))

    result = ComplianceCheckResult(checks=checks)
    failed = [c.paragraph for c in checks if c.status is ERROR]
    if failed:
        logger.warning(f"Compliance check failed for run {billing_input.run_id}: {', '.join(failed)}")
    else:
        logger.info(f"Compliance check passed for run {billing_input.run_id}")
    return result
