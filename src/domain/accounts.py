from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from .costing import CostingMethod, select_lots
from .errors import ConfigurationError, InsufficientBalance, MalformedTransaction
from .ledger import (
    Account,
    AccountId,
    AccountKind,
    CurrencyCode,
    ExpenseRecord,
    GainLossRecord,
    IncomeRecord,
    Lot,
    LotId,
    LotPortion,
    Position,
    RunStatus,
)


class LedgerState(BaseModel):
    """Accounts, the lot arena and the records produced so far.

    Lots live in ``lots`` keyed by a sequential id and are never removed from
    it; an account only lists the ids of its open lots. Records keep pointing
    at exhausted lots through the arena.
    """

    home_currency: CurrencyCode
    accounts: dict[AccountId, Account] = Field(default_factory=dict)
    lots: dict[LotId, Lot] = Field(default_factory=dict)
    gain_loss_records: list[GainLossRecord] = Field(default_factory=list)
    income_records: list[IncomeRecord] = Field(default_factory=list)
    expense_records: list[ExpenseRecord] = Field(default_factory=list)
    status: RunStatus = RunStatus.PROCESSING
    processed: int = 0

    def open_account(self, account_id: AccountId, currency: CurrencyCode, kind: AccountKind) -> Account:
        existing = self.accounts.get(account_id)
        if existing is not None:
            if existing.currency != currency or existing.kind != kind:
                raise ConfigurationError(
                    f"Account {account_id} already open as {existing.kind} {existing.currency}, "
                    f"cannot reopen as {kind} {currency}"
                )
            return existing

        if kind == AccountKind.HOME_CURRENCY and currency != self.home_currency:
            raise ConfigurationError(
                f"Home-currency account {account_id} must be denominated in {self.home_currency}, got {currency}"
            )
        if kind != AccountKind.HOME_CURRENCY and currency == self.home_currency:
            raise ConfigurationError(f"Account {account_id} holds the home currency {currency} but is of kind {kind}")

        account = Account(id=account_id, currency=currency, kind=kind)
        self.accounts[account_id] = account
        return account

    def account(self, account_id: AccountId, *, position: Position | None = None) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise MalformedTransaction(f"unknown account {account_id!r}", position=position)
        return account

    def open_lots(self, account_id: AccountId) -> list[Lot]:
        return [self.lots[lot_id] for lot_id in self.accounts[account_id].lot_ids]

    def balance(self, account_id: AccountId) -> Decimal:
        account = self.accounts[account_id]
        if not account.holds_lots:
            return account.balance
        held = sum((lot.remaining_quantity for lot in self.open_lots(account_id)), start=Decimal(0))
        return held + account.short_quantity

    def available(self, account_id: AccountId) -> Decimal:
        return sum((lot.remaining_quantity for lot in self.open_lots(account_id)), start=Decimal(0))

    def deposit(self, account: Account, amount: Decimal) -> None:
        self._require_kind(account, AccountKind.HOME_CURRENCY)
        account.balance += amount

    def withdraw(self, account: Account, amount: Decimal) -> None:
        self._require_kind(account, AccountKind.HOME_CURRENCY)
        account.balance -= amount

    def record_acquisition(
        self,
        account: Account,
        quantity: Decimal,
        unit_cost: Decimal,
        acquired_on: date,
        *,
        position: Position,
        carried_basis: bool = False,
    ) -> Lot | None:
        """Add ``quantity`` to ``account``; return the new lot, if one was created.

        A purchased or received unit must cost something. Only basis carried
        over from existing lots (``carried_basis``) may be zero.
        """
        if not quantity.is_finite() or quantity <= 0:
            raise MalformedTransaction(f"acquired quantity must be positive, got {quantity}", position=position)
        if not unit_cost.is_finite() or unit_cost < 0 or (unit_cost == 0 and not carried_basis):
            raise MalformedTransaction(f"unit cost must be positive, got {unit_cost}", position=position)

        if not account.holds_lots:
            account.balance += quantity
            return None

        if account.short_quantity < 0:
            covered = min(quantity, -account.short_quantity)
            account.short_quantity += covered
            quantity -= covered
            if quantity == 0:
                return None

        lot = Lot(
            id=LotId(len(self.lots)),
            account_id=account.id,
            acquired_on=acquired_on,
            created_by=position,
            original_quantity=quantity,
            remaining_quantity=quantity,
            unit_cost=unit_cost,
        )
        self.lots[lot.id] = lot
        account.lot_ids.append(lot.id)
        return lot

    def consume(
        self,
        account: Account,
        quantity: Decimal,
        method: CostingMethod,
        *,
        position: Position,
    ) -> list[LotPortion]:
        """Take ``quantity`` out of ``account`` under ``method``.

        Availability is checked before anything is mutated, so a failing call
        leaves the account untouched. Margin accounts book whatever the open
        lots cannot cover as a short position instead of failing.
        """
        if not quantity.is_finite() or quantity <= 0:
            raise MalformedTransaction(f"disposed quantity must be positive, got {quantity}", position=position)
        if not account.holds_lots:
            raise MalformedTransaction(
                f"account {account.id} holds the home currency and has no lots to consume", position=position
            )

        selection = list(select_lots(self.open_lots(account.id), quantity, method))
        taken = sum((take for _, take in selection), start=Decimal(0))
        uncovered = quantity - taken
        if uncovered > 0 and not account.may_go_negative:
            raise InsufficientBalance(
                account_id=account.id,
                requested=quantity,
                available=taken,
                position=position,
            )

        portions: list[LotPortion] = []
        for lot, take in selection:
            lot.remaining_quantity -= take
            portions.append(
                LotPortion(lot_id=lot.id, quantity=take, unit_cost=lot.unit_cost, acquired_on=lot.acquired_on)
            )
        account.lot_ids = [lot_id for lot_id in account.lot_ids if self.lots[lot_id].remaining_quantity > 0]
        account.short_quantity -= uncovered
        return portions

    def snapshot(self) -> LedgerState:
        return self.model_copy(deep=True)

    @staticmethod
    def _require_kind(account: Account, kind: AccountKind) -> None:
        if account.kind != kind:
            raise MalformedTransaction(f"account {account.id} is {account.kind}, expected {kind}")
