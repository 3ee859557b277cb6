import math
from datetime import date

import pytest

from offplan_roi.core.percentages import (
    allocation_shares,
    allocation_total,
    normalize,
    remaining,
    to_percentage,
    to_value,
    validate_allocation,
)
from offplan_roi.core.schedule import PurchaseConfig


def _config(**overrides):
    base = dict(
        property_value=500_000.0,
        down_payment_value=50_000.0,
        installments_value=3_000.0,
        installments_count=36,
        reinforcement_value=20_000.0,
        reinforcement_frequency=6,
        keys_value=222_000.0,
        valuation_date=date(2025, 1, 1),
        start_date=date(2025, 2, 1),
        delivery_date=date(2028, 2, 1),
    )
    base.update(overrides)
    return PurchaseConfig(**base)


def test_conversions():
    assert math.isclose(to_percentage(50_000, 500_000), 10.0)
    assert to_percentage(1, 0) == 0.0
    assert math.isclose(to_value(10.0, 500_000), 50_000.0)
    assert remaining([10.0, 30.0]) == 60.0
    assert remaining([70.0, 50.0]) == 0.0


def test_normalize():
    shares = normalize([1.0, 1.0, 2.0])
    assert shares == [25.0, 25.0, 50.0]
    assert normalize([0.0, 0.0]) == [0.0, 0.0]


def test_allocation_shares_cover_every_component():
    shares = allocation_shares(_config())
    # 50k + 36 * 3k + 6 * 20k + 222k
    assert shares == pytest.approx([10.0, 21.6, 24.0, 44.4])
    assert math.isclose(allocation_total(_config()), 100.0)


def test_valid_allocation():
    check = validate_allocation(_config())
    assert check.is_valid
    assert check.errors == []


def test_invalid_allocation_lists_every_problem():
    check = validate_allocation(_config(keys_value=0.0, delivery_date=None, installments_count=0))
    assert not check.is_valid
    assert len(check.errors) == 3
    assert any("100%" in e for e in check.errors)
    assert any("Delivery" in e for e in check.errors)
    assert any("installment" in e for e in check.errors)


def test_zero_property_value_is_rejected():
    check = validate_allocation(_config(property_value=0.0))
    assert not check.is_valid
    assert check.total_percentage == 0.0
