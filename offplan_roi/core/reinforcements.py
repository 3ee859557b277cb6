from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Iterable, List, Sequence

from .utils import add_months, months_between

if TYPE_CHECKING:
    from .schedule import PurchaseConfig


MAX_REINFORCEMENTS = 100


def reinforcement_months(
    installments_count: int,
    frequency: int,
    final_months_without: int = 0,
) -> List[int]:
    """Installment months (1-based) that carry a reinforcement payment.

    Starts at ``frequency`` and steps by ``frequency`` while the month stays
    within ``installments_count - final_months_without``. At most
    ``MAX_REINFORCEMENTS`` months are returned.
    """
    if frequency <= 0:
        return []
    last_month = installments_count - final_months_without
    months: List[int] = []
    month = frequency
    while month <= last_month and len(months) < MAX_REINFORCEMENTS:
        months.append(month)
        month += frequency
    return months


def months_from_dates(dates: Iterable[date], start_date: date) -> List[int]:
    # first installment month is month 1
    return sorted(months_between(start_date, d) + 1 for d in dates)


def automatic_reinforcement_dates(start_date: date, months: Sequence[int]) -> List[date]:
    return [add_months(start_date, m - 1) for m in months]


def resolve_reinforcement_months(config: "PurchaseConfig") -> List[int]:
    """Custom dates win over the frequency rule when any are supplied."""
    if config.custom_reinforcement_dates and config.start_date is not None:
        return months_from_dates(config.custom_reinforcement_dates, config.start_date)
    return reinforcement_months(
        config.installments_count,
        config.reinforcement_frequency,
        config.final_months_without_reinforcement,
    )


def default_reinforcement_dates(config: "PurchaseConfig") -> List[date]:
    """Dates the frequency rule would produce, used to reset custom dates."""
    if config.start_date is None:
        return []
    months = reinforcement_months(
        config.installments_count,
        config.reinforcement_frequency,
        config.final_months_without_reinforcement,
    )
    return automatic_reinforcement_dates(config.start_date, months)


def max_reinforcement_count(installments_count: int, frequency: int, final_months_without: int = 0) -> int:
    if frequency <= 0:
        return 0
    return max(0, (installments_count - final_months_without) // frequency)


def value_per_reinforcement(total_budget: float, months: Sequence[int]) -> float:
    return total_budget / len(months) if months else 0.0


def total_reinforcement_value(value_per_reinforcement: float, months: Sequence[int]) -> float:
    return value_per_reinforcement * len(months)


def start_date_from_delivery(delivery_date: date, installments_count: int) -> date:
    return add_months(delivery_date, -installments_count)


def delivery_date_from_start(start_date: date, installments_count: int) -> date:
    return add_months(start_date, installments_count)


def start_date_from_valuation(valuation_date: date) -> date:
    return add_months(valuation_date, 1)
