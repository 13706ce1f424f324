"""
Rest cent tests.

1000 EUR heating on three equal meters gives 216.67 consumption per unit,
i.e. one cent too much; areas 33/33/34 give 115.50/115.50/119.00.
Line totals before reconciliation: 332.17 / 332.17 / 335.67 = 1000.01.
"""
from decimal import Decimal

from heizkosten import allocator, reconciler
from heizkosten.datatypes import RestCentRule

from conftest import HEATING_ONLY_COSTS, REST_CENT_UNITS, make_input


def _run(billing_input, rule=None):
    lines, warnings = allocator.allocate(billing_input)
    summary = reconciler.reconcile(lines, billing_input.costs,
                                   rule or billing_input.config.rest_cent_rule, warnings)
    return lines, summary, warnings


def test_no_correction_when_balanced(base_input):
    lines, summary, warnings = _run(base_input)
    assert summary.total_distributed == Decimal('18300.00')
    assert summary.trial_balance_diff == 0
    assert summary.trial_balance_ok
    assert not any(w.startswith('Restcent') for w in warnings)


def test_rest_cent_to_largest_share(rest_cent_input):
    lines, summary, warnings = _run(rest_cent_input)
    assert [l.total_cost for l in lines] == [Decimal('332.17'), Decimal('332.17'), Decimal('335.66')]
    assert lines[2].heating_total == Decimal('335.66')
    assert lines[2].balance == Decimal('335.66')
    assert summary.total_distributed == Decimal('1000.00')
    assert summary.total_heating_distributed == Decimal('1000.00')
    assert summary.trial_balance_diff == 0
    assert summary.trial_balance_ok
    assert warnings == ['Restcent-Korrektur: -0.01 EUR wurde der Einheit u3 zugewiesen (größter Anteil)']


def test_rest_cent_to_smallest_share_first_occurrence(rest_cent_input):
    lines, summary, warnings = _run(rest_cent_input, RestCentRule.ASSIGN_TO_SMALLEST_SHARE)
    assert [l.total_cost for l in lines] == [Decimal('332.16'), Decimal('332.17'), Decimal('335.67')]
    assert summary.trial_balance_ok
    assert any('kleinster Anteil' in w for w in warnings)


def test_only_one_line_absorbs_the_residual(rest_cent_input):
    before, _ = allocator.allocate(rest_cent_input)
    after, _, _ = _run(rest_cent_input)
    changed = [a.unit_id for a, b in zip(after, before) if a.total_cost != b.total_cost]
    assert changed == ['u3']


def test_correction_is_booked_on_heating_even_without_heating_costs():
    costs = {'heatingSupply': 0, 'hotWaterSupply': 0, 'maintenance': 100, 'meterReadingCost': 0}
    units = [
        {'unitId': 'a', 'areaM2': 1, 'prepayment': 0},
        {'unitId': 'b', 'areaM2': 1, 'prepayment': 0},
        {'unitId': 'c', 'areaM2': 1, 'prepayment': 0},
    ]
    lines, summary, _ = _run(make_input(totalCosts=costs, units=units))
    # 33.33 each, 0.01 missing; tie on the largest share → first line
    assert lines[0].heating_total == Decimal('0.01')
    assert lines[0].maintenance_share == Decimal('33.33')
    assert lines[0].total_cost == Decimal('33.34')
    assert summary.total_maintenance_distributed == Decimal('99.99')
    assert summary.total_heating_distributed == Decimal('0.01')
    assert summary.total_distributed == Decimal('100.00')


def test_select_target_ties():
    lines, _ = allocator.allocate(make_input(totalCosts=HEATING_ONLY_COSTS, units=[
        {'unitId': 'x', 'areaM2': 10, 'prepayment': 0},
        {'unitId': 'y', 'areaM2': 10, 'prepayment': 0},
    ]))
    assert reconciler.select_target(lines, RestCentRule.ASSIGN_TO_LARGEST_SHARE) == 0
    assert reconciler.select_target(lines, RestCentRule.ASSIGN_TO_SMALLEST_SHARE) == 0


def test_summary_family_totals(base_input):
    lines, summary, _ = _run(base_input)
    assert summary.total_heating_distributed == Decimal('10000.00')
    assert summary.total_hot_water_distributed == Decimal('5000.00')
    assert summary.total_maintenance_distributed == Decimal('3000.00')
    assert summary.total_meter_reading_distributed == Decimal('300.00')
    assert summary.total_costs == Decimal('18300')
