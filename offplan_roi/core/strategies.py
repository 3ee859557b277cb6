"""Whole-candidate exit strategies on a simplified per-property plan.

Unlike the full schedule generator, the plan here only knows the total
value, the down payment and the delivery date: the remaining balance is
split evenly over the months until delivery and correction/appreciation
are constant monthly rates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .schedule import PaymentKind
from .utils import add_months, annualized_roi, grow, ratio


SEARCH_MAX_MONTHS = 60
RENT_HOLD_MONTHS = 6


@dataclass(frozen=True)
class PlanPayment:
    month: int
    amount: float
    date: date
    kind: PaymentKind


@dataclass(frozen=True)
class PropertyPlan:
    total_value: float
    down_payment: float
    start_date: date
    delivery_date: date
    payments: Tuple[PlanPayment, ...] = field(default_factory=tuple)

    def with_payments(self) -> "PropertyPlan":
        return PropertyPlan(
            total_value=self.total_value,
            down_payment=self.down_payment,
            start_date=self.start_date,
            delivery_date=self.delivery_date,
            payments=tuple(build_plan_payments(self)),
        )


@dataclass(frozen=True)
class MarketAssumptions:
    monthly_correction: float = 0.005
    monthly_appreciation: float = 0.0135
    inflation: float = 0.004
    rental_rate_percent: float = 0.6


@dataclass(frozen=True)
class ExitStrategy:
    id: str
    name: str
    month: int
    investment: float
    sale_value: float
    outstanding_debt: float
    profit: float
    total_roi: float
    annual_roi: float
    description: str
    extra_income: Optional[float] = None


def months_until_delivery(plan: PropertyPlan) -> int:
    # 30-day months, rounded up
    days = (plan.delivery_date - plan.start_date).days
    return max(0, math.ceil(days / 30))


def build_plan_payments(plan: PropertyPlan) -> List[PlanPayment]:
    """Down payment at month 0 then equal installments up to delivery.

    The last installment is the keys payment and absorbs the rounding.
    """
    remaining = plan.total_value - plan.down_payment
    months = months_until_delivery(plan)
    payments = [PlanPayment(0, plan.down_payment, plan.start_date, PaymentKind.DOWN_PAYMENT)]
    if months == 0:
        return payments

    installment = remaining / months
    for i in range(1, months + 1):
        is_last = i == months
        amount = remaining - installment * (months - 1) if is_last else installment
        payments.append(
            PlanPayment(
                month=i,
                amount=amount,
                date=add_months(plan.start_date, i),
                kind=PaymentKind.KEYS if is_last else PaymentKind.INSTALLMENT,
            )
        )
    return payments


class StrategyComparator:
    def __init__(self, plan: PropertyPlan, market: MarketAssumptions = MarketAssumptions()):
        self.plan = plan if plan.payments else plan.with_payments()
        self.market = market

    # ------------------------- Core calculators ------------------------- #
    def investment_until(self, month: int) -> float:
        return sum(p.amount for p in self.plan.payments if p.month <= month)

    def sale_value(self, month: int) -> float:
        corrected = grow(self.plan.total_value, self.market.monthly_correction, month)
        return grow(corrected, self.market.monthly_appreciation, month)

    def outstanding_debt(self, investment: float, month: int) -> float:
        return grow(self.plan.total_value - investment, self.market.monthly_correction, month)

    def snapshot(self, month: int) -> Dict[str, float]:
        investment = self.investment_until(month)
        sale_value = self.sale_value(month)
        debt = self.outstanding_debt(investment, month)
        profit = sale_value - debt - investment
        return {
            "month": month,
            "investment": investment,
            "sale_value": sale_value,
            "outstanding_debt": debt,
            "profit": profit,
            "total_roi": ratio(profit, investment) * 100,
            "annual_roi": annualized_roi(profit, investment, month),
        }

    def _best_month(self, first: int, default: int, metric: str, max_months: int) -> int:
        best_month, best_value = default, -math.inf
        for month in range(first, max_months + 1):
            snap = self.snapshot(month)
            if snap["investment"] > 0 and snap[metric] > best_value:
                best_month, best_value = month, snap[metric]
        return best_month

    def _sale_strategy(self, strategy_id: str, name: str, month: int, description: str) -> ExitStrategy:
        snap = self.snapshot(month)
        return ExitStrategy(
            id=strategy_id,
            name=name,
            month=month,
            investment=snap["investment"],
            sale_value=snap["sale_value"],
            outstanding_debt=snap["outstanding_debt"],
            profit=snap["profit"],
            total_roi=snap["total_roi"],
            annual_roi=snap["annual_roi"],
            description=description,
        )

    # ------------------------- Strategies ------------------------- #
    def annual_roi_strategy(self, max_months: int = SEARCH_MAX_MONTHS) -> ExitStrategy:
        month = self._best_month(6, 12, "annual_roi", max_months)
        return self._sale_strategy(
            "annual_roi", "Max annual ROI", month, "Sell when the annualized ROI peaks"
        )

    def total_roi_strategy(self, max_months: int = SEARCH_MAX_MONTHS) -> ExitStrategy:
        month = self._best_month(12, 24, "total_roi", max_months)
        return self._sale_strategy(
            "total_roi", "Max total ROI", month, "Sell when the total ROI peaks"
        )

    def hold_and_rent_strategy(self, hold_months: int = RENT_HOLD_MONTHS) -> ExitStrategy:
        month = months_until_delivery(self.plan) + hold_months
        investment = self.plan.total_value
        sale_value = self.sale_value(month)
        rent = sale_value * self.market.rental_rate_percent / 100 * hold_months
        profit = sale_value + rent - investment
        return ExitStrategy(
            id="hold_and_rent",
            name="Post-delivery + rent",
            month=month,
            investment=investment,
            sale_value=sale_value,
            outstanding_debt=0.0,
            profit=profit,
            total_roi=ratio(profit, investment) * 100,
            annual_roi=annualized_roi(profit, investment, month),
            description=f"Wait for delivery and rent for {hold_months} months before selling",
            extra_income=rent,
        )

    def compare(self) -> List[ExitStrategy]:
        return [self.annual_roi_strategy(), self.total_roi_strategy(), self.hold_and_rent_strategy()]

    def roi_evolution(self, max_months: int = SEARCH_MAX_MONTHS) -> pd.DataFrame:
        rows = []
        for month in range(1, max_months + 1):
            snap = self.snapshot(month)
            rows.append(
                {
                    "month": month,
                    "annual_roi": snap["annual_roi"] if snap["investment"] > 0 else 0.0,
                    "total_roi": snap["total_roi"],
                    "investment": snap["investment"],
                    "property_value": snap["sale_value"],
                }
            )
        return pd.DataFrame(rows, columns=["month", "annual_roi", "total_roi", "investment", "property_value"])


def compare_strategies(plan: PropertyPlan, market: MarketAssumptions = MarketAssumptions()) -> List[ExitStrategy]:
    return StrategyComparator(plan, market).compare()


def best_strategy(strategies: List[ExitStrategy]) -> Optional[ExitStrategy]:
    if not strategies:
        return None
    best = strategies[0]
    for strategy in strategies[1:]:
        if strategy.annual_roi > best.annual_roi:
            best = strategy
    return best


def roi_evolution(
    plan: PropertyPlan,
    market: MarketAssumptions = MarketAssumptions(),
    max_months: int = SEARCH_MAX_MONTHS,
) -> pd.DataFrame:
    return StrategyComparator(plan, market).roi_evolution(max_months)
