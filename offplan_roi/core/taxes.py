from __future__ import annotations

from dataclasses import dataclass

from .utils import MONTHS_IN_YEAR


DEFAULT_FINANCING_MONTHLY_RATE = 0.01


@dataclass(frozen=True)
class RentalEstimate:
    monthly: float
    annual_return_percent: float


@dataclass(frozen=True)
class CommissionPolicy:
    include: bool = False
    rate: float = 0.06  # fraction of the sale value


@dataclass(frozen=True)
class TaxPolicy:
    include: bool = False
    rate: float = 0.15  # fraction of the positive gross profit


@dataclass(frozen=True)
class NetProceeds:
    commission: float
    tax: float
    net_profit: float


def rental_estimate(property_value: float, rate_percent: float) -> RentalEstimate:
    """Monthly rent as a percentage of the property value, plus its yearly yield."""
    monthly = property_value * rate_percent / 100
    if property_value == 0:
        return RentalEstimate(monthly=monthly, annual_return_percent=0.0)
    annual = monthly * MONTHS_IN_YEAR / property_value * 100
    return RentalEstimate(monthly=monthly, annual_return_percent=annual)


def capital_gains_tax(gain: float, eff_rate: float) -> float:
    """Compute effective capital gains tax.

    Negative gains are not taxed.
    """
    if eff_rate <= 0 or gain <= 0:
        return 0.0
    return gain * eff_rate


def brokerage_commission(sale_value: float, rate: float) -> float:
    return sale_value * rate


def net_proceeds(
    sale_value: float,
    gross_profit: float,
    commission: CommissionPolicy = CommissionPolicy(),
    tax: TaxPolicy = TaxPolicy(),
) -> NetProceeds:
    commission_amount = brokerage_commission(sale_value, commission.rate) if commission.include else 0.0
    tax_amount = capital_gains_tax(gross_profit, tax.rate) if tax.include else 0.0
    return NetProceeds(
        commission=commission_amount,
        tax=tax_amount,
        net_profit=gross_profit - commission_amount - tax_amount,
    )


def financing_estimate(keys_amount: float, monthly_rate: float = DEFAULT_FINANCING_MONTHLY_RATE) -> float:
    """Illustrative monthly bank payment for the keys balance (flat rate).

    Not an amortization model: only a rough order of magnitude.
    """
    return max(0.0, keys_amount) * monthly_rate
