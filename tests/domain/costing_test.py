from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from domain.costing import CostingMethod, consumption_order, select_lots
from domain.ledger import AccountId, Lot, LotId, Position


def _lot(lot_id: int, acquired_on: date, quantity: str = "1") -> Lot:
    return Lot(
        id=LotId(lot_id),
        account_id=AccountId("wallet"),
        acquired_on=acquired_on,
        created_by=Position(lot_id),
        original_quantity=Decimal(quantity),
        remaining_quantity=Decimal(quantity),
        unit_cost=Decimal("10"),
    )


JAN = date(2019, 1, 1)
FEB = date(2019, 2, 1)
MAR = date(2019, 3, 1)


def test_fifo_exhausts_earliest_lot_first() -> None:
    lots = [_lot(0, JAN, "2"), _lot(1, FEB, "1"), _lot(2, MAR, "5")]

    taken = [(lot.id, qty) for lot, qty in select_lots(lots, Decimal("2.5"), CostingMethod.FIFO)]

    assert taken == [(0, Decimal("2")), (1, Decimal("0.5"))]


def test_lifo_exhausts_latest_lot_first() -> None:
    lots = [_lot(0, JAN, "2"), _lot(1, FEB, "1"), _lot(2, MAR, "1")]

    taken = [(lot.id, qty) for lot, qty in select_lots(lots, Decimal("1.5"), CostingMethod.LIFO)]

    assert taken == [(2, Decimal("1")), (1, Decimal("0.5"))]


def test_same_day_lots_keep_insertion_order_under_both_methods() -> None:
    lots = [_lot(0, JAN), _lot(1, FEB), _lot(2, FEB), _lot(3, JAN)]

    assert [lot.id for lot in consumption_order(lots, CostingMethod.FIFO)] == [0, 3, 1, 2]
    assert [lot.id for lot in consumption_order(lots, CostingMethod.LIFO)] == [1, 2, 0, 3]


def test_creation_order_methods_ignore_dates() -> None:
    # Lot 1 inherited an older basis date, e.g. via a transfer.
    lots = [_lot(0, FEB), _lot(1, JAN), _lot(2, MAR)]

    assert [lot.id for lot in consumption_order(lots, CostingMethod.FIFO_BY_CREATION)] == [0, 1, 2]
    assert [lot.id for lot in consumption_order(lots, CostingMethod.LIFO_BY_CREATION)] == [2, 1, 0]
    assert [lot.id for lot in consumption_order(lots, CostingMethod.FIFO)] == [1, 0, 2]


def test_selection_does_not_reorder_or_mutate_input() -> None:
    lots = [_lot(0, MAR), _lot(1, JAN)]

    list(select_lots(lots, Decimal("2"), CostingMethod.FIFO))

    assert [lot.id for lot in lots] == [0, 1]
    assert all(lot.remaining_quantity == Decimal("1") for lot in lots)


def test_selection_stops_short_when_lots_run_out() -> None:
    lots = [_lot(0, JAN, "1")]

    taken = list(select_lots(lots, Decimal("3"), CostingMethod.FIFO))

    assert sum(qty for _, qty in taken) == Decimal("1")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("fifo", CostingMethod.FIFO),
        ("LIFO", CostingMethod.LIFO),
        ("fifo-by-creation", CostingMethod.FIFO_BY_CREATION),
        ("1", CostingMethod.LIFO_BY_CREATION),
        ("2", CostingMethod.LIFO),
        ("3", CostingMethod.FIFO_BY_CREATION),
        ("4", CostingMethod.FIFO),
    ],
)
def test_parse_costing_method(raw: str, expected: CostingMethod) -> None:
    assert CostingMethod.parse(raw) == expected


def test_parse_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        CostingMethod.parse("HIFO")


def test_consumption_order_rejects_unknown_method() -> None:
    with pytest.raises(AssertionError):
        consumption_order([_lot(0, JAN)], "HIFO")  # type: ignore[arg-type]
