import pandas as pd
from decimal import Decimal
from typing import Optional
from .allocator import round2
from .datatypes import ApportionedLine, HeatBillingInput, HeatBillingResult, PlausibilityFlag
import logging

logger = logging.getLogger(__name__)

# Column order of the line table
COLUMNS = [
    'Einheit',
    'Mieter',
    'Fläche m²',
    'Heizung Verbrauch',
    'Heizung Fläche',
    'Heizung',
    'Warmwasser Verbrauch',
    'Warmwasser Fläche',
    'Warmwasser',
    'Instandhaltung',
    'Ablesung',
    'Gesamt',
    'Vorauszahlung',
    'Saldo',
    'Geschätzt',
]


def lines_frame(result: HeatBillingResult) -> pd.DataFrame:
    """One row per apportioned unit, money as 2-decimal strings"""
    rows = [_line_to_row(line) for line in result.lines]
    return pd.DataFrame(rows, columns=COLUMNS)


def result_to_dict(result: HeatBillingResult, billing_input: Optional[HeatBillingInput] = None) -> dict:
    """
    JSON-ready structure of a result, in the camelCase shape the persisting
    caller stores per run and per line.
    """
    s = result.summary
    out = {
        'lines': [_line_to_dict(line) for line in result.lines],
        'summary': {
            'totalHeatingDistributed': _format_money(s.total_heating_distributed),
            'totalHotWaterDistributed': _format_money(s.total_hot_water_distributed),
            'totalMaintenanceDistributed': _format_money(s.total_maintenance_distributed),
            'totalMeterReadingDistributed': _format_money(s.total_meter_reading_distributed),
            'totalDistributed': _format_money(s.total_distributed),
            'totalCosts': _format_money(s.total_costs),
            'trialBalanceDiff': _format_money(s.trial_balance_diff),
            'trialBalanceOk': s.trial_balance_ok,
        },
        'warnings': list(result.warnings),
        'complianceCheck': {
            'passed': result.compliance_check.passed,
            'checks': [
                {
                    'paragraph': c.paragraph,
                    'requirement': c.requirement,
                    'status': c.status.value,
                    'details': c.details,
                }
                for c in result.compliance_check.checks
            ],
        },
        'plausibilityReport': {
            'passed': result.plausibility_report.passed,
            'flags': [_flag_to_dict(f) for f in result.plausibility_report.flags],
        },
    }
    if billing_input is not None:
        out['runId'] = billing_input.run_id
        out['propertyId'] = billing_input.property_id
    logger.debug(f"Serialized result with {len(result.lines)} lines")
    return out


def _line_to_row(line: ApportionedLine) -> dict:
    return {
        'Einheit': line.unit_id,
        'Mieter': line.tenant_name or '',
        'Fläche m²': str(line.area_m2),
        'Heizung Verbrauch': _format_money(line.heating_consumption_share),
        'Heizung Fläche': _format_money(line.heating_area_share),
        'Heizung': _format_money(line.heating_total),
        'Warmwasser Verbrauch': _format_money(line.hot_water_consumption_share),
        'Warmwasser Fläche': _format_money(line.hot_water_area_share),
        'Warmwasser': _format_money(line.hot_water_total),
        'Instandhaltung': _format_money(line.maintenance_share),
        'Ablesung': _format_money(line.meter_reading_share),
        'Gesamt': _format_money(line.total_cost),
        'Vorauszahlung': _format_money(line.prepayment),
        'Saldo': _format_money(line.balance),
        'Geschätzt': 'ja' if line.is_estimated else '',
    }


def _line_to_dict(line: ApportionedLine) -> dict:
    return {
        'unitId': line.unit_id,
        'tenantName': line.tenant_name,
        'areaM2': str(line.area_m2),
        'mea': _format_number(line.mea),
        'occupancy': line.occupancy,
        'heatingMeterType': line.heating_meter_kind.value if line.heating_meter_kind else None,
        'heatingMeterValue': _format_number(line.heating_meter_value),
        'heatingMeterMissing': line.heating_meter_missing,
        'hotWaterMeterValue': _format_number(line.hot_water_meter_value),
        'hotWaterMeterMissing': line.hot_water_meter_missing,
        'heatingConsumptionShare': _format_money(line.heating_consumption_share),
        'heatingAreaShare': _format_money(line.heating_area_share),
        'heatingTotal': _format_money(line.heating_total),
        'hotWaterConsumptionShare': _format_money(line.hot_water_consumption_share),
        'hotWaterAreaShare': _format_money(line.hot_water_area_share),
        'hotWaterTotal': _format_money(line.hot_water_total),
        'maintenanceShare': _format_money(line.maintenance_share),
        'meterReadingShare': _format_money(line.meter_reading_share),
        'totalCost': _format_money(line.total_cost),
        'prepayment': _format_money(line.prepayment),
        'balance': _format_money(line.balance),
        'isEstimated': line.is_estimated,
        'estimationReason': line.estimation_reason,
        'plausibilityFlags': [_flag_to_dict(f) for f in line.plausibility_flags],
    }


def _flag_to_dict(flag: PlausibilityFlag) -> dict:
    return {'unitId': flag.unit_id, 'type': flag.kind, 'message': flag.message}


def _format_money(amount: Decimal) -> str:
    return f'{round2(amount):.2f}'


def _format_number(value):
    return None if value is None else str(value)
