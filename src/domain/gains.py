from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Sequence

from .ledger import GainLossRecord, HoldingTerm, LotPortion, Position

DEFAULT_LONG_TERM_THRESHOLD = timedelta(days=365)


def allocate_proceeds(total_proceeds: Decimal, portions: Sequence[LotPortion]) -> list[Decimal]:
    """Split ``total_proceeds`` across ``portions`` weighted by quantity.

    Every portion but the last gets ``total * qty / total_qty``; the last one
    takes what is left, so the allocations always add up to the total exactly.
    """
    if not portions:
        return []

    total_quantity = sum((portion.quantity for portion in portions), start=Decimal(0))
    allocations: list[Decimal] = []
    allocated = Decimal(0)
    for portion in portions[:-1]:
        share = total_proceeds * portion.quantity / total_quantity
        allocations.append(share)
        allocated += share
    allocations.append(total_proceeds - allocated)
    return allocations


def holding_term(
    acquired_on: date, disposed_on: date, threshold: timedelta = DEFAULT_LONG_TERM_THRESHOLD
) -> HoldingTerm:
    if disposed_on - acquired_on > threshold:
        return HoldingTerm.LONG
    return HoldingTerm.SHORT


def calculate_gain_loss(
    portion: LotPortion,
    proceeds: Decimal,
    *,
    disposed_on: date,
    position: Position,
    long_term_threshold: timedelta = DEFAULT_LONG_TERM_THRESHOLD,
) -> GainLossRecord:
    cost_basis = portion.cost_basis
    return GainLossRecord(
        position=position,
        lot_id=portion.lot_id,
        quantity=portion.quantity,
        cost_basis=cost_basis,
        proceeds=proceeds,
        gain=proceeds - cost_basis,
        acquired_on=portion.acquired_on,
        disposed_on=disposed_on,
        term=holding_term(portion.acquired_on, disposed_on, long_term_threshold),
    )
