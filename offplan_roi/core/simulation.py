from __future__ import annotations

import random
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from .indices import IndexRateProvider
from .resale import (
    ResaleOutcome,
    RiskPolicy,
    StrategyResult,
    best_resale_summary,
    resale_outcome,
    risk_profiles,
)
from .schedule import PurchaseConfig, Schedule, ScheduleGenerator
from .taxes import RentalEstimate, rental_estimate


@dataclass(frozen=True)
class SimulationResult:
    config: PurchaseConfig
    schedule: Schedule
    resale: ResaleOutcome
    rental: RentalEstimate
    best_resale: Dict[str, object]
    risk_profiles: List[StrategyResult] = field(default_factory=list)

    def to_record(self, name: str = "") -> "SimulationRecord":
        return SimulationRecord(
            id=f"sim-{int(time.time() * 1000)}-{random.randint(0, 999)}",
            name=name,
            timestamp=int(time.time() * 1000),
            result=self,
        )


@dataclass(frozen=True)
class SimulationRecord:
    """Opaque hand-off to persistence: plain data, ISO dates."""

    id: str
    name: str
    timestamp: int
    result: SimulationResult

    def to_dict(self) -> Dict[str, object]:
        result = self.result
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "config": result.config.to_dict(),
            "schedule": [entry.to_dict() for entry in result.schedule],
            "results": {
                **asdict(result.resale),
                "rental_estimate": result.rental.monthly,
                "annual_rental_return": result.rental.annual_return_percent,
            },
            "best_resale_info": dict(result.best_resale),
            "risk_profiles": [p.to_dict() for p in result.risk_profiles],
        }


def run_simulation(
    config: PurchaseConfig,
    provider: Optional[IndexRateProvider] = None,
    resale_month: Optional[int] = None,
    threshold_percent: float = 10.0,
    policy: Optional[RiskPolicy] = None,
) -> SimulationResult:
    """Schedule, resale at ``resale_month`` (default: keys month) and picks."""
    if provider is None:
        provider = IndexRateProvider.with_fallback()
    schedule = ScheduleGenerator(provider).generate(config)

    month = schedule.horizon if resale_month is None else resale_month
    resale = resale_outcome(schedule, month)
    return SimulationResult(
        config=config,
        schedule=schedule,
        resale=resale,
        rental=rental_estimate(resale.property_value, config.rental_rate_percent),
        best_resale=best_resale_summary(schedule, threshold_percent),
        risk_profiles=risk_profiles(schedule, policy),
    )


async def simulate(
    config: PurchaseConfig,
    provider: IndexRateProvider,
    resale_month: Optional[int] = None,
    threshold_percent: float = 10.0,
    policy: Optional[RiskPolicy] = None,
) -> SimulationResult:
    await provider.ensure_loaded()
    return run_simulation(config, provider, resale_month, threshold_percent, policy)
