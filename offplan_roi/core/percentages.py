from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from .schedule import PurchaseConfig


ALLOCATION_TOLERANCE = 0.01


def to_percentage(value: float, total: float) -> float:
    if total == 0:
        return 0.0
    return value / total * 100


def to_value(percent: float, total: float) -> float:
    return percent / 100 * total


def sum_percentages(percentages: Iterable[float]) -> float:
    return float(sum(percentages))


def remaining(used: Iterable[float], target: float = 100.0) -> float:
    return max(0.0, target - sum_percentages(used))


def normalize(percentages: Iterable[float], target: float = 100.0) -> List[float]:
    """Scale a list of shares so that they add up to ``target``.

    A list summing to zero is returned as is.
    """
    values = [float(p) for p in percentages]
    total = sum(values)
    if total == 0:
        return values
    factor = target / total
    return [p * factor for p in values]


@dataclass(frozen=True)
class AllocationCheck:
    is_valid: bool
    total_percentage: float
    errors: List[str] = field(default_factory=list)


def allocation_shares(config: "PurchaseConfig") -> List[float]:
    """Down payment, installments, reinforcements and keys as % of the price."""
    from .reinforcements import resolve_reinforcement_months

    total = config.property_value
    reinforcement_total = config.reinforcement_value * len(resolve_reinforcement_months(config))
    return [
        to_percentage(config.down_payment_value, total),
        to_percentage(config.installments_value * config.installments_count, total),
        to_percentage(reinforcement_total, total),
        to_percentage(config.keys_value, total),
    ]


def allocation_total(config: "PurchaseConfig") -> float:
    return sum_percentages(allocation_shares(config))


def validate_allocation(config: "PurchaseConfig") -> AllocationCheck:
    """Advisory checks run before a simulation; the engine never enforces them."""
    errors: List[str] = []
    total = allocation_total(config)

    if abs(total - 100.0) > ALLOCATION_TOLERANCE:
        errors.append(f"Shares must add up to exactly 100% (got {total:.2f}%)")
    if config.valuation_date is None:
        errors.append("Valuation date is required")
    if config.delivery_date is None:
        errors.append("Delivery date is required")
    if config.installments_count < 1:
        errors.append("At least one installment is required")
    if config.property_value <= 0:
        errors.append("Property value must be greater than zero")

    return AllocationCheck(is_valid=not errors, total_percentage=total, errors=errors)
