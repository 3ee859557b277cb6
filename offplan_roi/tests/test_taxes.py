import math

from offplan_roi.core.taxes import (
    CommissionPolicy,
    TaxPolicy,
    capital_gains_tax,
    financing_estimate,
    net_proceeds,
    rental_estimate,
)


def test_rental_estimate():
    est = rental_estimate(600_000.0, 0.5)
    assert math.isclose(est.monthly, 3_000.0)
    assert math.isclose(est.annual_return_percent, 6.0)
    assert rental_estimate(0.0, 0.5).annual_return_percent == 0.0


def test_capital_gains_tax():
    assert capital_gains_tax(-1000.0, 0.15) == 0.0
    assert capital_gains_tax(1000.0, 0.0) == 0.0
    assert math.isclose(capital_gains_tax(1000.0, 0.15), 150.0)


def test_net_proceeds_defaults_exclude_costs():
    result = net_proceeds(600_000.0, 80_000.0)
    assert result.commission == 0.0
    assert result.tax == 0.0
    assert result.net_profit == 80_000.0


def test_net_proceeds_with_commission_and_tax():
    result = net_proceeds(
        600_000.0,
        80_000.0,
        commission=CommissionPolicy(include=True, rate=0.05),
        tax=TaxPolicy(include=True, rate=0.15),
    )
    assert math.isclose(result.commission, 30_000.0)
    assert math.isclose(result.tax, 12_000.0)
    assert math.isclose(result.net_profit, 38_000.0)


def test_loss_is_not_taxed():
    result = net_proceeds(400_000.0, -10_000.0, tax=TaxPolicy(include=True))
    assert result.tax == 0.0
    assert result.net_profit == -10_000.0


def test_financing_estimate():
    assert math.isclose(financing_estimate(250_000.0), 2_500.0)
    assert financing_estimate(-5_000.0) == 0.0
