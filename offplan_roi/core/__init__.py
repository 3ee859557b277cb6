from .indices import IndexRateProvider, IndexFamily, ManualRate, parse_source
from .percentages import to_percentage, to_value, remaining, validate_allocation
from .reinforcements import reinforcement_months, months_from_dates
from .schedule import PurchaseConfig, PaymentEntry, Schedule, ScheduleGenerator, generate_schedule
from .resale import resale_outcome, best_by_profit, best_by_roi, earliest_qualifying, risk_profiles, RiskPolicy
from .taxes import rental_estimate, net_proceeds, capital_gains_tax
from .strategies import PropertyPlan, MarketAssumptions, compare_strategies, best_strategy
from .simulation import run_simulation, simulate

__all__ = [
	"IndexRateProvider",
	"IndexFamily",
	"ManualRate",
	"parse_source",
	"to_percentage",
	"to_value",
	"remaining",
	"validate_allocation",
	"reinforcement_months",
	"months_from_dates",
	"PurchaseConfig",
	"PaymentEntry",
	"Schedule",
	"ScheduleGenerator",
	"generate_schedule",
	"resale_outcome",
	"best_by_profit",
	"best_by_roi",
	"earliest_qualifying",
	"risk_profiles",
	"RiskPolicy",
	"rental_estimate",
	"net_proceeds",
	"capital_gains_tax",
	"PropertyPlan",
	"MarketAssumptions",
	"compare_strategies",
	"best_strategy",
	"run_simulation",
	"simulate",
]
