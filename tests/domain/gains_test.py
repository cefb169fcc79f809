from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from domain.gains import allocate_proceeds, calculate_gain_loss, holding_term
from domain.ledger import HoldingTerm, LotId, LotPortion, Position


def _portion(lot_id: int, quantity: str, unit_cost: str, acquired_on: date = date(2018, 1, 1)) -> LotPortion:
    return LotPortion(
        lot_id=LotId(lot_id),
        quantity=Decimal(quantity),
        unit_cost=Decimal(unit_cost),
        acquired_on=acquired_on,
    )


def test_proceeds_are_allocated_by_quantity() -> None:
    portions = [_portion(0, "2", "100"), _portion(1, "0.5", "400")]

    assert allocate_proceeds(Decimal("1250"), portions) == [Decimal("1000"), Decimal("250")]


def test_allocation_sums_exactly_with_repeating_fractions() -> None:
    portions = [_portion(0, "1", "1"), _portion(1, "1", "1"), _portion(2, "1", "1")]

    allocations = allocate_proceeds(Decimal("100"), portions)

    assert sum(allocations) == Decimal("100")
    assert allocations[0] == allocations[1]


def test_allocation_of_no_portions_is_empty() -> None:
    assert allocate_proceeds(Decimal("10"), []) == []


def test_gain_loss_record() -> None:
    portion = _portion(3, "0.5", "400", acquired_on=date(2018, 6, 1))

    record = calculate_gain_loss(portion, Decimal("250"), disposed_on=date(2018, 9, 1), position=Position(7))

    assert record.cost_basis == Decimal("200")
    assert record.gain == Decimal("50")
    assert record.lot_id == 3
    assert record.position == 7
    assert record.term == HoldingTerm.SHORT


def test_loss_is_negative_gain() -> None:
    record = calculate_gain_loss(
        _portion(0, "1", "500"), Decimal("300"), disposed_on=date(2018, 2, 1), position=Position(1)
    )

    assert record.gain == Decimal("-200")


def test_holding_term_threshold() -> None:
    acquired = date(2018, 1, 1)

    assert holding_term(acquired, acquired + timedelta(days=365)) == HoldingTerm.SHORT
    assert holding_term(acquired, acquired + timedelta(days=366)) == HoldingTerm.LONG
    assert holding_term(acquired, acquired + timedelta(days=31), timedelta(days=30)) == HoldingTerm.LONG
