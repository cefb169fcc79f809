from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AccountId = NewType("AccountId", str)
CurrencyCode = NewType("CurrencyCode", str)
LotId = NewType("LotId", int)
Position = NewType("Position", int)

# Matches the precision of the ledger arithmetic context.
MAX_SIGNIFICANT_DIGITS = 28


class AccountKind(StrEnum):
    HOME_CURRENCY = "HOME_CURRENCY"
    ASSET = "ASSET"
    MARGIN = "MARGIN"


class TransactionType(StrEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    ACQUISITION = "ACQUISITION"
    EXCHANGE = "EXCHANGE"
    SPEND = "SPEND"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"


class HoldingTerm(StrEnum):
    SHORT = "SHORT"
    LONG = "LONG"


class RunStatus(StrEnum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


class AccountSpec(BaseModel):
    """Static definition of an account as supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    id: AccountId
    currency: CurrencyCode
    kind: AccountKind

    @model_validator(mode="after")
    def _validate_fields(self) -> AccountSpec:
        if not self.id:
            raise ValueError("account id must be non-empty")
        if not self.currency:
            raise ValueError("account currency must be non-empty")
        return self


class Account(BaseModel):
    """An account and its current holdings.

    Home-currency accounts only use ``balance``. Asset and margin accounts keep
    their open lots as ids into the ledger's lot arena, in acquisition order.
    ``short_quantity`` is the (non-positive) part of a margin account that was
    consumed without any open lot behind it.
    """

    id: AccountId
    currency: CurrencyCode
    kind: AccountKind
    balance: Decimal = Decimal(0)
    lot_ids: list[LotId] = Field(default_factory=list)
    short_quantity: Decimal = Decimal(0)

    @property
    def holds_lots(self) -> bool:
        return self.kind != AccountKind.HOME_CURRENCY

    @property
    def may_go_negative(self) -> bool:
        return self.kind in (AccountKind.HOME_CURRENCY, AccountKind.MARGIN)


class Lot(BaseModel):
    id: LotId
    account_id: AccountId
    acquired_on: date
    created_by: Position
    original_quantity: Decimal
    remaining_quantity: Decimal
    unit_cost: Decimal

    @model_validator(mode="after")
    def _validate_fields(self) -> Lot:
        if self.original_quantity <= 0:
            raise ValueError("original_quantity must be > 0")
        if self.remaining_quantity < 0:
            raise ValueError("remaining_quantity must be >= 0")
        if self.unit_cost < 0:
            raise ValueError("unit_cost must be >= 0")
        return self

    @property
    def cost_basis(self) -> Decimal:
        return self.remaining_quantity * self.unit_cost


class LotPortion(BaseModel):
    """A slice of a lot taken by a single consumption."""

    model_config = ConfigDict(frozen=True)

    lot_id: LotId
    quantity: Decimal
    unit_cost: Decimal
    acquired_on: date

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.unit_cost


class Transaction(BaseModel):
    """A single entry of the ordered input log.

    ``quantity`` is what leaves the source (or, for income and acquisitions,
    what arrives in the destination). ``counter_quantity`` is the amount on
    the other side of the trade: home currency spent on a purchase, home
    currency received on a sale, units received on an asset-to-asset exchange.
    ``unit_value`` is the fair value of one unit of ``quantity`` in home
    currency at the transaction date.
    """

    model_config = ConfigDict(frozen=True)

    position: Position
    occurred_on: date
    type: TransactionType
    source_account_id: AccountId | None = None
    destination_account_id: AccountId | None = None
    quantity: Decimal
    counter_quantity: Decimal | None = None
    unit_value: Decimal | None = None
    memo: str = ""

    @field_validator("quantity", "counter_quantity", "unit_value", mode="before")
    @classmethod
    def _reject_floats(cls, value: object) -> object:
        if isinstance(value, float):
            raise ValueError(f"binary float {value!r} is not accepted, pass a Decimal or a decimal string")
        return value

    @model_validator(mode="after")
    def _validate_decimals(self) -> Transaction:
        for name in ("quantity", "counter_quantity", "unit_value"):
            value = getattr(self, name)
            if value is None:
                continue
            if not value.is_finite():
                raise ValueError(f"{name} must be a finite decimal")
            if len(value.as_tuple().digits) > MAX_SIGNIFICANT_DIGITS:
                raise ValueError(f"{name} has more than {MAX_SIGNIFICANT_DIGITS} significant digits")
        return self


class GainLossRecord(BaseModel):
    position: Position
    lot_id: LotId
    quantity: Decimal
    cost_basis: Decimal
    proceeds: Decimal
    gain: Decimal
    acquired_on: date
    disposed_on: date
    term: HoldingTerm


class IncomeRecord(BaseModel):
    position: Position
    account_id: AccountId
    quantity: Decimal
    amount: Decimal


class ExpenseRecord(BaseModel):
    position: Position
    account_id: AccountId
    quantity: Decimal
    amount: Decimal
