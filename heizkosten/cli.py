'''
To Run:
python -m heizkosten.cli run_2025.yaml --today 2026-03-01
'''
import click
import json
import logging
from datetime import date
from pathlib import Path
from heizkosten import engine, report
from heizkosten.config import HeatBillingInputError, load_input
from heizkosten.datatypes import ComplianceStatus, HeatBillingResult

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

EXIT_COMPLIANCE_FAILED = 2

_STATUS_ICONS = {
    ComplianceStatus.OK: '✔',
    ComplianceStatus.WARNING: '⚠',
    ComplianceStatus.ERROR: '✘',
}


def format_summary(result: HeatBillingResult) -> str:
    """
    Format the run summary, warnings, compliance checklist and plausibility
    flags for the terminal.
    """
    s = result.summary
    out = []
    out.append("=== HEIZKOSTENABRECHNUNG ===")
    out.append("")
    out.append(f"Heizung verteilt:       {s.total_heating_distributed:>12.2f} EUR")
    out.append(f"Warmwasser verteilt:    {s.total_hot_water_distributed:>12.2f} EUR")
    out.append(f"Instandhaltung verteilt:{s.total_maintenance_distributed:>12.2f} EUR")
    out.append(f"Ablesung verteilt:      {s.total_meter_reading_distributed:>12.2f} EUR")
    out.append(f"Gesamt verteilt:        {s.total_distributed:>12.2f} EUR")
    out.append(f"Gesamtkosten:           {s.total_costs:>12.2f} EUR")
    out.append(f"Probebilanz: {'OK' if s.trial_balance_ok else 'FEHLER'} (Differenz {s.trial_balance_diff:.2f} EUR)")

    if result.warnings:
        out.append("")
        out.append("Hinweise:")
        out.extend(f"  - {w}" for w in result.warnings)

    out.append("")
    out.append(f"HeizKG-Prüfung: {'bestanden' if result.compliance_check.passed else 'NICHT bestanden'}")
    for c in result.compliance_check.checks:
        out.append(f"  {_STATUS_ICONS[c.status]} {c.paragraph}: {c.details}")

    flags = result.plausibility_report.flags
    out.append("")
    out.append(f"Plausibilität: {'keine Auffälligkeiten' if not flags else f'{len(flags)} Auffälligkeit(en)'}")
    for f in flags:
        prefix = f"Einheit {f.unit_id}" if f.unit_id else "Liegenschaft"
        out.append(f"  - {prefix}: {f.message}")

    return "\n".join(out)


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--today', type=click.DateTime(formats=['%Y-%m-%d']), default=None,
              help='Evaluation date for the §14 deadline check (default: today)')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
@click.option('--strict', is_flag=True, help='Exit with status 2 when a compliance check fails')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def main(input_file, today, as_json, strict, verbose):
    """
    Compute a heating cost settlement from a yaml or json run file.

    Prints the per-unit lines, the summary, the HeizKG compliance checklist and
    the plausibility flags.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        billing_input = load_input(input_file)
    except HeatBillingInputError as exc:
        raise click.ClickException(str(exc))

    eval_date = today.date() if today else date.today()
    result = engine.compute(billing_input, today=eval_date)
    logger.info(f"Computed {len(result.lines)} lines from {input_file.name}")

    if as_json:
        click.echo(json.dumps(report.result_to_dict(result, billing_input), ensure_ascii=False, indent=2))
    else:
        click.echo(report.lines_frame(result).to_string(index=False))
        click.echo("")
        click.echo(format_summary(result))

    if strict and not result.compliance_check.passed:
        raise SystemExit(EXIT_COMPLIANCE_FAILED)


if __name__ == '__main__':
    main()
