from datetime import date

from offplan_roi.core.reinforcements import (
    MAX_REINFORCEMENTS,
    automatic_reinforcement_dates,
    default_reinforcement_dates,
    delivery_date_from_start,
    max_reinforcement_count,
    months_from_dates,
    reinforcement_months,
    resolve_reinforcement_months,
    start_date_from_delivery,
    start_date_from_valuation,
    total_reinforcement_value,
    value_per_reinforcement,
)
from offplan_roi.core.schedule import PurchaseConfig


def test_months_follow_frequency():
    assert reinforcement_months(36, 6) == [6, 12, 18, 24, 30, 36]
    assert reinforcement_months(12, 6, final_months_without=2) == [6]
    assert reinforcement_months(12, 0) == []
    assert reinforcement_months(5, 6) == []


def test_months_are_capped():
    months = reinforcement_months(1_000, 1)
    assert len(months) == MAX_REINFORCEMENTS
    assert months[-1] == MAX_REINFORCEMENTS


def test_dates_and_months():
    start = date(2025, 1, 31)
    dates = automatic_reinforcement_dates(start, [1, 2, 6])
    assert dates == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 6, 30)]
    assert months_from_dates(reversed(dates), start) == [1, 2, 6]


def test_custom_dates_win_over_frequency():
    config = PurchaseConfig(
        installments_count=12,
        reinforcement_frequency=3,
        start_date=date(2025, 3, 10),
        custom_reinforcement_dates=(date(2025, 12, 1),),
    )
    assert resolve_reinforcement_months(config) == [10]
    assert default_reinforcement_dates(config) == [
        date(2025, 5, 10),
        date(2025, 8, 10),
        date(2025, 11, 10),
        date(2026, 2, 10),
    ]


def test_budget_helpers():
    assert max_reinforcement_count(36, 6, 6) == 5
    assert max_reinforcement_count(36, 0) == 0
    assert value_per_reinforcement(60_000.0, [6, 12, 18]) == 20_000.0
    assert value_per_reinforcement(60_000.0, []) == 0.0
    assert total_reinforcement_value(20_000.0, [6, 12]) == 40_000.0


def test_timeline_helpers():
    assert start_date_from_valuation(date(2025, 1, 31)) == date(2025, 2, 28)
    assert delivery_date_from_start(date(2025, 2, 15), 36) == date(2028, 2, 15)
    assert start_date_from_delivery(date(2028, 2, 15), 36) == date(2025, 2, 15)
