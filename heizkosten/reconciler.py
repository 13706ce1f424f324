"""
Rest cent reconciliation (Probebilanz).

Per-unit rounding leaves a residual of a few cents between the input costs and
the sum of all line totals. Exactly one line absorbs the whole residual, chosen
by the configured RestCentRule. The correction is always booked against the
heating family of that line, whatever family caused the difference.
"""
import logging
from decimal import Decimal
from typing import List

from .allocator import round2
from .datatypes import ApportionedLine, CostTotals, RestCentRule, Summary

logger = logging.getLogger(__name__)

REST_CENT_THRESHOLD = Decimal('0.001')

_RULE_LABELS = {
    RestCentRule.ASSIGN_TO_LARGEST_SHARE: 'größter Anteil',
    RestCentRule.ASSIGN_TO_SMALLEST_SHARE: 'kleinster Anteil',
}


def summarize(lines: List[ApportionedLine], costs: CostTotals) -> Summary:
    """Aggregate the per-family totals of the (not yet reconciled) lines."""
    total_costs = costs.total
    total_distributed = round2(sum((l.total_cost for l in lines), Decimal(0)))
    return Summary(
        total_heating_distributed=round2(sum((l.heating_total for l in lines), Decimal(0))),
        total_hot_water_distributed=round2(sum((l.hot_water_total for l in lines), Decimal(0))),
        total_maintenance_distributed=round2(sum((l.maintenance_share for l in lines), Decimal(0))),
        total_meter_reading_distributed=round2(sum((l.meter_reading_share for l in lines), Decimal(0))),
        total_distributed=total_distributed,
        total_costs=total_costs,
        trial_balance_diff=round2(total_costs - total_distributed),
    )


def select_target(lines: List[ApportionedLine], rule: RestCentRule) -> int:
    """Index of the line that absorbs the rest cent; first occurrence wins ties."""
    target = 0
    for idx, line in enumerate(lines):
        if rule is RestCentRule.ASSIGN_TO_SMALLEST_SHARE:
            if line.total_cost < lines[target].total_cost:
                target = idx
        elif line.total_cost > lines[target].total_cost:
            target = idx
    return target


def reconcile(lines: List[ApportionedLine], costs: CostTotals, rule: RestCentRule,
              warnings: List[str]) -> Summary:
    """
    Book the rounding residual onto a single line and return the final summary.

    Mutates the chosen line and appends a warning naming the unit and the rule.
    """
    summary = summarize(lines, costs)
    rest_cent = round2(summary.total_costs - summary.total_distributed)

    if abs(rest_cent) > REST_CENT_THRESHOLD and lines:
        target = lines[select_target(lines, rule)]
        target.total_cost = round2(target.total_cost + rest_cent)
        target.heating_total = round2(target.heating_total + rest_cent)
        target.balance = round2(target.total_cost - target.prepayment)
        summary.total_distributed = round2(summary.total_distributed + rest_cent)
        summary.total_heating_distributed = round2(summary.total_heating_distributed + rest_cent)

        logger.info(f"Rest cent {rest_cent} assigned to unit {target.unit_id} ({rule.value})")
        warnings.append(
            f'Restcent-Korrektur: {rest_cent:.2f} EUR wurde der Einheit {target.unit_id} '
            f'zugewiesen ({_RULE_LABELS[rule]})'
        )

    summary.trial_balance_diff = round2(summary.total_costs - summary.total_distributed)
    if not summary.trial_balance_ok:
        logger.warning(f"Trial balance off by {summary.trial_balance_diff} EUR")
    return summary
