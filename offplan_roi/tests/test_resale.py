import math
from datetime import date

from offplan_roi.core.indices import ManualRate
from offplan_roi.core.resale import (
    RiskPolicy,
    best_by_profit,
    best_by_roi,
    best_resale_summary,
    earliest_qualifying,
    resale_outcome,
    risk_profiles,
    roi_table,
)
from offplan_roi.core.schedule import PurchaseConfig, generate_schedule


def _schedule(**overrides):
    base = dict(
        property_value=500_000.0,
        down_payment_value=50_000.0,
        installments_value=37_500.0,
        installments_count=12,
        correction=ManualRate(0.0),
        appreciation=ManualRate(1.0),
        valuation_date=date(2025, 1, 10),
        start_date=date(2025, 2, 10),
        delivery_date=date(2026, 2, 10),
    )
    base.update(overrides)
    return generate_schedule(PurchaseConfig(**base))


def test_empty_schedule_gives_empty_results():
    schedule = _schedule(start_date=None)
    assert best_by_profit(schedule).month == 0
    assert best_by_roi(schedule).profit == 0.0
    assert earliest_qualifying(schedule) is None
    assert [r.month for r in risk_profiles(schedule)] == [0, 0, 0]
    assert roi_table(schedule).empty


def test_outcome_at_month():
    schedule = _schedule()
    outcome = resale_outcome(schedule, 4)
    assert outcome.investment_value == 200_000.0
    assert outcome.remaining_balance == 300_000.0
    assert math.isclose(outcome.profit, 500_000 * (1.01 ** 4 - 1), rel_tol=1e-9)
    assert math.isclose(outcome.profit_percentage, outcome.profit / 200_000 * 100)


def test_outcome_for_missing_month_is_zero():
    outcome = resale_outcome(_schedule(), 99)
    assert outcome.profit == 0.0
    assert outcome.investment_value == 0.0


def test_small_installments_favour_selling_at_keys():
    schedule = _schedule(down_payment_value=490_000.0, installments_value=10_000.0 / 12)
    assert best_by_profit(schedule).month == 13
    assert best_by_roi(schedule).month == 13


def test_earliest_month_over_threshold():
    schedule = _schedule()
    assert earliest_qualifying(schedule, 5.0).month == 1
    assert earliest_qualifying(schedule, 10.0).month == 4
    assert earliest_qualifying(schedule, 10.0, within_months=3) is None


def test_ties_resolve_to_first_month():
    schedule = _schedule(appreciation=ManualRate(0.0))
    best = best_by_profit(schedule)
    assert best.month == 1
    assert best.profit == 0.0
    assert earliest_qualifying(schedule, 0.0) is None


def test_roi_search_prefers_early_exit_on_standard_plan():
    assert best_by_roi(_schedule()).month == 1


def test_risk_profiles():
    rapid, balanced, maximum = risk_profiles(_schedule())
    assert (rapid.label, balanced.label, maximum.label) == ("rapid", "balanced", "maximum")
    assert rapid.month == 4
    assert balanced.month == 9
    assert maximum.month == 13
    assert math.isclose(maximum.composite_score, 1.0)
    assert rapid.month <= balanced.month <= maximum.month


def test_rapid_profile_without_qualifying_month_uses_score():
    rapid = risk_profiles(_schedule(), RiskPolicy(rapid_threshold_percent=50.0))[0]
    assert rapid.month == 5


def test_summary_and_table():
    schedule = _schedule()
    summary = best_resale_summary(schedule)
    assert summary["best_profit_month"] == 13
    assert summary["best_roi_month"] == 1
    assert summary["early_month"] == 4
    assert summary["early_total_paid"] == 200_000.0

    table = roi_table(schedule)
    assert len(table) == len(schedule) - 1
    assert table["month"].iloc[0] == 1
