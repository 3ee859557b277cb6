from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

import pandas as pd

from .indices import CorrectionSource, IndexFamily, IndexRateProvider, ManualRate, CUB_NACIONAL, describe_source
from .reinforcements import resolve_reinforcement_months
from .utils import MONTHS_IN_YEAR, add_months


logger = logging.getLogger(__name__)


BALANCE_TOLERANCE = 0.01

SCHEDULE_COLUMNS = [
    "month",
    "date",
    "kind",
    "description",
    "amount",
    "reinforcement",
    "balance",
    "total_paid",
    "property_value",
]


@dataclass(frozen=True)
class PurchaseConfig:
    # Price & payment plan
    property_value: float = 500_000.0
    down_payment_value: float = 50_000.0
    installments_value: float = 37_500.0
    installments_count: int = 12
    reinforcement_value: float = 0.0
    reinforcement_frequency: int = 0  # months, 0 = no reinforcement
    final_months_without_reinforcement: int = 0
    keys_value: float = 0.0  # informational, the keys amount is derived

    # Indices
    correction: CorrectionSource = IndexFamily(CUB_NACIONAL)
    appreciation: CorrectionSource = ManualRate(1.0)
    cycle_offset: int = 0  # position in the 12-month historical cycle

    # Rental
    rental_rate_percent: float = 0.5

    # Timeline
    valuation_date: Optional[date] = None
    start_date: Optional[date] = None
    delivery_date: Optional[date] = None
    custom_reinforcement_dates: Tuple[date, ...] = ()

    @property
    def has_dates(self) -> bool:
        return None not in (self.valuation_date, self.start_date, self.delivery_date)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["correction"] = describe_source(self.correction)
        data["appreciation"] = describe_source(self.appreciation)
        for key in ("valuation_date", "start_date", "delivery_date"):
            value = getattr(self, key)
            data[key] = value.isoformat() if value else None
        data["custom_reinforcement_dates"] = [d.isoformat() for d in self.custom_reinforcement_dates]
        return data


class PaymentKind(str, Enum):
    DOWN_PAYMENT = "entrada"
    INSTALLMENT = "parcela"
    REINFORCEMENT = "reforço"
    KEYS = "chaves"


@dataclass(frozen=True)
class PaymentEntry:
    date: date
    kind: PaymentKind
    description: str
    amount: float
    reinforcement_amount: float
    balance: float
    total_paid: float
    property_value: float
    month: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "month": self.month,
            "date": self.date.isoformat(),
            "kind": self.kind.value,
            "description": self.description,
            "amount": self.amount,
            "reinforcement": self.reinforcement_amount,
            "balance": self.balance,
            "total_paid": self.total_paid,
            "property_value": self.property_value,
        }


@dataclass(frozen=True)
class Schedule:
    """Ordered payment rows: down payment, installments, keys."""

    entries: Tuple[PaymentEntry, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PaymentEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> PaymentEntry:
        return self.entries[index]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def horizon(self) -> int:
        """Last relative month of the schedule (the keys month)."""
        return self.entries[-1].month if self.entries else 0

    @property
    def final_balance(self) -> float:
        return self.entries[-1].balance if self.entries else 0.0

    @property
    def total_paid(self) -> float:
        return self.entries[-1].total_paid if self.entries else 0.0

    @property
    def keys_amount(self) -> float:
        for entry in reversed(self.entries):
            if entry.kind is PaymentKind.KEYS:
                return entry.amount
        return 0.0

    def entry_for_month(self, month: int) -> Optional[PaymentEntry]:
        for entry in self.entries:
            if entry.month == month:
                return entry
        return None

    def to_frame(self) -> pd.DataFrame:
        if not self.entries:
            return pd.DataFrame(columns=SCHEDULE_COLUMNS, data=[])
        return pd.DataFrame([e.to_dict() for e in self.entries], columns=SCHEDULE_COLUMNS)


EMPTY_SCHEDULE = Schedule()


class ScheduleGenerator:
    """Month-by-month payment plan with compounding correction and appreciation.

    Each month the outstanding balance is corrected by that month's rate; the
    base installment and any reinforcement are corrected by the cumulative
    factor of all previous months. The last installment is never paid on its
    own: the corrected balance becomes the keys amount due at delivery.
    """

    def __init__(self, provider: IndexRateProvider):
        self.provider = provider

    # ------------------------- Core calculators ------------------------- #
    def _correction_factor(self, config: PurchaseConfig, months: int) -> float:
        return self.provider.cumulative_factor(config.correction, months, config.cycle_offset)

    def _appreciation_factor(self, config: PurchaseConfig, months: int) -> float:
        return self.provider.cumulative_factor(config.appreciation, months, config.cycle_offset)

    def property_value_at(self, config: PurchaseConfig, month: int) -> float:
        return config.property_value * self._correction_factor(config, month) * self._appreciation_factor(config, month)

    # ------------------------- Schedule ------------------------- #
    def generate(self, config: PurchaseConfig) -> Schedule:
        if not config.has_dates:
            logger.info("Schedule not generated: valuation, start and delivery dates are required")
            return EMPTY_SCHEDULE

        entries: List[PaymentEntry] = []
        balance = config.property_value - config.down_payment_value
        total_paid = config.down_payment_value
        entries.append(
            PaymentEntry(
                date=config.valuation_date,
                kind=PaymentKind.DOWN_PAYMENT,
                description="Entrada",
                amount=config.down_payment_value,
                reinforcement_amount=0.0,
                balance=balance,
                total_paid=total_paid,
                property_value=config.property_value,
                month=0,
            )
        )

        if config.installments_count < 1:
            logger.info("Schedule has no installments, only the down payment is listed")
            return Schedule(tuple(entries))

        reinforcements = resolve_reinforcement_months(config)
        reinforcement_set = set(reinforcements)
        keys_amount = config.keys_value
        current_date = config.start_date
        factor = 1.0

        for i in range(1, config.installments_count + 1):
            rate = self.provider.monthly_rate(config.correction, i - 1, config.cycle_offset)
            corrected = balance * (1 + rate)
            # cumulative correction over months 0..i-1
            factor *= 1 + rate

            is_reinforcement = i in reinforcement_set
            reinforcement = config.reinforcement_value * factor if is_reinforcement else 0.0
            installment = config.installments_value * factor + reinforcement

            if i == config.installments_count:
                keys_amount = corrected
                break

            balance = corrected - installment
            total_paid += installment

            description = f"Parcela {i}"
            kind = PaymentKind.INSTALLMENT
            if is_reinforcement:
                description = f"Parcela {i} + Reforço {reinforcements.index(i) + 1}"
                kind = PaymentKind.REINFORCEMENT

            entries.append(
                PaymentEntry(
                    date=current_date,
                    kind=kind,
                    description=description,
                    amount=installment,
                    reinforcement_amount=reinforcement,
                    balance=balance,
                    total_paid=total_paid,
                    property_value=self.property_value_at(config, i),
                    month=i,
                )
            )
            current_date = add_months(current_date, 1)

        total_paid += keys_amount
        keys_month = config.installments_count + 1
        entries.append(
            PaymentEntry(
                date=config.delivery_date,
                kind=PaymentKind.KEYS,
                description="Chaves",
                amount=keys_amount,
                reinforcement_amount=0.0,
                balance=0.0,
                total_paid=total_paid,
                property_value=self.property_value_at(config, keys_month),
                month=keys_month,
            )
        )

        logger.debug(
            "Generated %d schedule entries (correction %s, appreciation %s), total paid %.2f",
            len(entries),
            describe_source(config.correction),
            describe_source(config.appreciation),
            total_paid,
        )
        return Schedule(tuple(entries))


def generate_schedule(config: PurchaseConfig, provider: Optional[IndexRateProvider] = None) -> Schedule:
    """Convenience wrapper; without a provider the built-in index table is used."""
    if provider is None:
        provider = IndexRateProvider.with_fallback()
    return ScheduleGenerator(provider).generate(config)


def validate_schedule(schedule: Schedule) -> bool:
    """Check chronological order and a settled final balance."""
    if schedule.is_empty:
        return False
    for previous, current in zip(schedule.entries, schedule.entries[1:]):
        if current.date < previous.date:
            logger.error("Schedule out of chronological order at month %d", current.month)
            return False
    if abs(schedule.final_balance) >= BALANCE_TOLERANCE:
        logger.error("Final balance is not zero: %.2f", schedule.final_balance)
        return False
    return True


def aggregate_yearly(frame: pd.DataFrame) -> pd.DataFrame:
    """Aggregate a schedule frame by contract year (month 0 is year 0).

    Returns a DataFrame with columns: year, amount, reinforcement,
    end_balance, total_paid, property_value
    """
    columns = ["year", "amount", "reinforcement", "end_balance", "total_paid", "property_value"]
    if frame.empty:
        return pd.DataFrame(columns=columns, data=[])

    frame = frame.copy()
    frame["year"] = (frame["month"] + MONTHS_IN_YEAR - 1) // MONTHS_IN_YEAR
    agg = (
        frame.groupby("year", as_index=False)[["amount", "reinforcement"]]
        .sum()
        .sort_values("year")
    )
    # Year-end snapshot
    ends = (
        frame.groupby("year", as_index=False)[["balance", "total_paid", "property_value"]]
        .last()
        .rename(columns={"balance": "end_balance"})
    )
    return agg.merge(ends, on="year", how="left")[columns]
