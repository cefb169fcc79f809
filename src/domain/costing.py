from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Iterable, Sequence, assert_never

from .ledger import Lot


class CostingMethod(StrEnum):
    """Order in which open lots are consumed.

    FIFO/LIFO order lots by acquisition date, keeping insertion order for lots
    acquired on the same day. The ``_BY_CREATION`` variants ignore dates and
    only look at the order in which lots were created, which differs once lots
    inherit older dates through transfers or like-kind exchanges.
    """

    FIFO = "FIFO"
    LIFO = "LIFO"
    FIFO_BY_CREATION = "FIFO_BY_CREATION"
    LIFO_BY_CREATION = "LIFO_BY_CREATION"

    @classmethod
    def parse(cls, value: str | CostingMethod) -> CostingMethod:
        """Accept a method name (any case) or one of the legacy numeric codes."""
        if isinstance(value, CostingMethod):
            return value
        text = str(value).strip()
        if text in LEGACY_METHOD_CODES:
            return LEGACY_METHOD_CODES[text]
        return cls(text.upper().replace("-", "_"))


LEGACY_METHOD_CODES = {
    "1": CostingMethod.LIFO_BY_CREATION,
    "2": CostingMethod.LIFO,
    "3": CostingMethod.FIFO_BY_CREATION,
    "4": CostingMethod.FIFO,
}


def consumption_order(lots: Sequence[Lot], method: CostingMethod) -> list[Lot]:
    """Return the lots in the order ``method`` would consume them.

    ``lots`` must be given in insertion order; the sequence itself is left untouched.
    """
    indexed = list(enumerate(lots))
    match method:
        case CostingMethod.FIFO:
            indexed.sort(key=lambda item: (item[1].acquired_on, item[0]))
        case CostingMethod.LIFO:
            indexed.sort(key=lambda item: (-item[1].acquired_on.toordinal(), item[0]))
        case CostingMethod.FIFO_BY_CREATION:
            pass
        case CostingMethod.LIFO_BY_CREATION:
            indexed.reverse()
        case _:
            assert_never(method)
    return [lot for _, lot in indexed]


def select_lots(lots: Sequence[Lot], quantity: Decimal, method: CostingMethod) -> Iterable[tuple[Lot, Decimal]]:
    """Yield ``(lot, quantity_taken)`` pairs covering as much of ``quantity`` as the lots allow.

    Lots with nothing remaining are skipped. Callers compare the total taken
    against ``quantity`` to detect a shortfall.
    """
    remaining = quantity
    for lot in consumption_order(lots, method):
        if remaining <= 0:
            break
        if lot.remaining_quantity <= 0:
            continue
        take = min(remaining, lot.remaining_quantity)
        remaining -= take
        yield lot, take
