"""Resale timing search over a finished payment schedule.

Every month of the schedule is a candidate sale: the investor has paid
``total_paid`` so far, still owes ``balance`` and the property is worth
``property_value``.

    profit = property_value - investment - remaining_balance
    profit_percentage = profit / investment * 100

Single-best searches (absolute profit, time-discounted ROI, earliest month
over a threshold) and three risk-profile picks are derived from that table.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .schedule import Schedule


RAPID = "rapid"
BALANCED = "balanced"
MAXIMUM = "maximum"


@dataclass(frozen=True)
class ResaleOutcome:
    month: int
    investment_value: float
    property_value: float
    remaining_balance: float
    profit: float
    profit_percentage: float


@dataclass(frozen=True)
class StrategyResult:
    month: int
    profit: float
    profit_percentage: float
    investment_value: float
    property_value: float
    remaining_balance: float
    label: str = ""
    composite_score: float = 0.0

    @classmethod
    def from_outcome(cls, outcome: ResaleOutcome, label: str = "", composite_score: float = 0.0) -> "StrategyResult":
        return cls(
            month=outcome.month,
            profit=outcome.profit,
            profit_percentage=outcome.profit_percentage,
            investment_value=outcome.investment_value,
            property_value=outcome.property_value,
            remaining_balance=outcome.remaining_balance,
            label=label,
            composite_score=composite_score,
        )

    @classmethod
    def empty(cls, label: str = "") -> "StrategyResult":
        return cls(0, 0.0, 0.0, 0.0, 0.0, 0.0, label, 0.0)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class RiskPolicy:
    """Bucket boundaries and score weights of the risk-profile search.

    Horizon fractions are applied to the schedule horizon (the keys month)
    and rounded up to whole months.
    """

    rapid_horizon_fraction: float = 1 / 3
    rapid_threshold_percent: float = 10.0
    balanced_horizon_fraction: float = 2 / 3
    profit_weight: float = 0.5
    roi_weight: float = 0.5


def _outcome(month: int, investment: float, property_value: float, balance: float) -> ResaleOutcome:
    profit = property_value - investment - balance
    percentage = profit / investment * 100 if investment > 0 else 0.0
    return ResaleOutcome(
        month=month,
        investment_value=investment,
        property_value=property_value,
        remaining_balance=balance,
        profit=profit,
        profit_percentage=percentage,
    )


def resale_outcome(schedule: Schedule, month: int) -> ResaleOutcome:
    """Sale evaluated on the schedule row of relative ``month``.

    Investment is the cumulative amount paid on that row. A month without a
    row yields an all-zero outcome.
    """
    entry = schedule.entry_for_month(month)
    if entry is None:
        return ResaleOutcome(month, 0.0, 0.0, 0.0, 0.0, 0.0)
    return _outcome(entry.month, entry.total_paid, entry.property_value, entry.balance)


def outcomes(schedule: Schedule) -> List[ResaleOutcome]:
    """One outcome per schedule row from month 1 onwards."""
    return [
        _outcome(e.month, e.total_paid, e.property_value, e.balance)
        for e in schedule
        if e.month >= 1
    ]


def roi_table(schedule: Schedule) -> pd.DataFrame:
    columns = ["month", "investment_value", "property_value", "remaining_balance", "profit", "profit_percentage"]
    rows = [asdict(o) for o in outcomes(schedule)]
    return pd.DataFrame(rows, columns=columns)


# ------------------------- Single-best searches ------------------------- #
def best_by_profit(schedule: Schedule) -> StrategyResult:
    best: Optional[ResaleOutcome] = None
    for outcome in outcomes(schedule):
        # strictly greater: the first month wins ties
        if best is None or outcome.profit > best.profit:
            best = outcome
    if best is None:
        return StrategyResult.empty("max_profit")
    return StrategyResult.from_outcome(best, "max_profit")


def time_discounted_roi(outcome: ResaleOutcome) -> float:
    """(profit / investment) / month, used to rank ROI per month held."""
    if outcome.investment_value <= 0 or outcome.month <= 0:
        return 0.0
    return outcome.profit / outcome.investment_value / outcome.month


def best_by_roi(schedule: Schedule) -> StrategyResult:
    best: Optional[ResaleOutcome] = None
    best_score = -math.inf
    for outcome in outcomes(schedule):
        if outcome.investment_value <= 0:
            continue
        score = time_discounted_roi(outcome)
        if score > best_score:
            best, best_score = outcome, score
    if best is None:
        return StrategyResult.empty("max_roi")
    return StrategyResult.from_outcome(best, "max_roi")


def earliest_qualifying(
    schedule: Schedule,
    threshold_percent: float = 10.0,
    within_months: Optional[int] = None,
) -> Optional[StrategyResult]:
    """First month whose profit is positive and at least ``threshold_percent``."""
    for outcome in outcomes(schedule):
        if within_months is not None and outcome.month > within_months:
            break
        if outcome.profit > 0 and outcome.profit_percentage >= threshold_percent:
            return StrategyResult.from_outcome(outcome, "earliest")
    return None


# ------------------------- Risk profiles ------------------------- #
def composite_scores(candidates: Sequence[ResaleOutcome], policy: RiskPolicy) -> List[float]:
    """Weighted sum of profit and ROI, each normalized by its best positive value."""
    max_profit = max((o.profit for o in candidates), default=0.0)
    max_pct = max((o.profit_percentage for o in candidates), default=0.0)
    scores = []
    for o in candidates:
        norm_profit = o.profit / max_profit if max_profit > 0 else 0.0
        norm_roi = o.profit_percentage / max_pct if max_pct > 0 else 0.0
        scores.append(policy.profit_weight * norm_profit + policy.roi_weight * norm_roi)
    return scores


def _window(horizon: int, fraction: float) -> int:
    return max(1, math.ceil(horizon * fraction))


def _best_scored(candidates: Sequence[ResaleOutcome], scores: Dict[int, float], window: int) -> Optional[ResaleOutcome]:
    best: Optional[ResaleOutcome] = None
    for outcome in candidates:
        if outcome.month > window:
            break
        if best is None or scores[outcome.month] > scores[best.month]:
            best = outcome
    return best


def risk_profiles(schedule: Schedule, policy: Optional[RiskPolicy] = None) -> List[StrategyResult]:
    """Rapid, balanced and maximum resale picks, in that order.

    - rapid: earliest month inside the rapid window clearing the profit
      threshold, otherwise the best composite score inside that window;
    - balanced: best composite score inside the balanced window;
    - maximum: highest absolute profit over the whole schedule.
    """
    policy = policy or RiskPolicy()
    candidates = outcomes(schedule)
    if not candidates:
        return [StrategyResult.empty(RAPID), StrategyResult.empty(BALANCED), StrategyResult.empty(MAXIMUM)]

    scores = dict(zip((o.month for o in candidates), composite_scores(candidates, policy)))
    horizon = schedule.horizon

    rapid_window = _window(horizon, policy.rapid_horizon_fraction)
    rapid = next(
        (
            o for o in candidates
            if o.month <= rapid_window and o.profit > 0 and o.profit_percentage >= policy.rapid_threshold_percent
        ),
        None,
    )
    if rapid is None:
        rapid = _best_scored(candidates, scores, rapid_window) or candidates[0]

    balanced = _best_scored(candidates, scores, _window(horizon, policy.balanced_horizon_fraction)) or candidates[0]

    maximum = best_by_profit(schedule)

    return [
        StrategyResult.from_outcome(rapid, RAPID, scores[rapid.month]),
        StrategyResult.from_outcome(balanced, BALANCED, scores[balanced.month]),
        replace(maximum, label=MAXIMUM, composite_score=scores.get(maximum.month, 0.0)),
    ]


def best_resale_summary(schedule: Schedule, threshold_percent: float = 10.0) -> Dict[str, object]:
    """Legacy best-resale block: max profit, max ROI and earliest month."""
    by_profit = best_by_profit(schedule)
    by_roi = best_by_roi(schedule)
    early = earliest_qualifying(schedule, threshold_percent)
    return {
        "best_profit_month": by_profit.month,
        "max_profit": by_profit.profit,
        "max_profit_percentage": by_profit.profit_percentage,
        "max_profit_total_paid": by_profit.investment_value,
        "best_roi_month": by_roi.month,
        "max_roi": by_roi.profit_percentage,
        "max_roi_profit": by_roi.profit,
        "max_roi_total_paid": by_roi.investment_value,
        "early_month": early.month if early else None,
        "early_profit": early.profit if early else None,
        "early_profit_percentage": early.profit_percentage if early else None,
        "early_total_paid": early.investment_value if early else None,
    }
