"""
Heizkostenabrechnung engine.

`compute` is the single entry point: it takes one already validated
HeatBillingInput and returns a complete HeatBillingResult. It holds no state
between calls and performs no I/O besides logging.
"""
import logging
from datetime import date
from typing import Optional

from . import allocator, compliance, plausibility, reconciler
from .datatypes import HeatBillingInput, HeatBillingResult

logger = logging.getLogger(__name__)


def compute(billing_input: HeatBillingInput, today: Optional[date] = None) -> HeatBillingResult:
    """
    Run pool split, apportionment, rest cent reconciliation, plausibility
    analysis and the HeizKG compliance checklist.

    `today` is the evaluation date for the §14 deadline check and defaults to
    the current date.
    """
    logger.debug(f"Computing run {billing_input.run_id} for property {billing_input.property_id}")

    lines, warnings = allocator.allocate(billing_input)
    summary = reconciler.reconcile(lines, billing_input.costs, billing_input.config.rest_cent_rule, warnings)
    report = plausibility.analyze(billing_input, lines)
    checklist = compliance.check(billing_input, lines, today=today)

    logger.info(
        f"Run {billing_input.run_id}: distributed {summary.total_distributed} of "
        f"{summary.total_costs} EUR over {len(lines)} units"
    )
    return HeatBillingResult(
        lines=lines,
        summary=summary,
        warnings=warnings,
        compliance_check=checklist,
        plausibility_report=report,
    )
