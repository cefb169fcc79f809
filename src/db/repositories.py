from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from db import models
from domain.accounts import LedgerState
from domain.ledger import (
    Account,
    AccountId,
    AccountKind,
    CurrencyCode,
    ExpenseRecord,
    GainLossRecord,
    HoldingTerm,
    IncomeRecord,
    Lot,
    LotId,
    Position,
    RunStatus,
)


class AccountRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, accounts: Iterable[Account]) -> list[Account]:
        orm_accounts = [
            models.AccountOrm(
                id=account.id,
                currency=account.currency,
                kind=account.kind.value,
                balance=account.balance,
                short_quantity=account.short_quantity,
            )
            for account in accounts
        ]
        self._session.add_all(orm_accounts)
        self._session.commit()
        return [self._to_domain(orm_account) for orm_account in orm_accounts]

    def list(self) -> list[Account]:
        orm_accounts = self._session.scalars(select(models.AccountOrm).order_by(models.AccountOrm.id)).all()
        return [self._to_domain(orm_account) for orm_account in orm_accounts]

    @staticmethod
    def _to_domain(orm_account: models.AccountOrm) -> Account:
        kind = AccountKind(orm_account.kind)
        lot_ids: list[LotId] = []
        if kind != AccountKind.HOME_CURRENCY:
            # Lot ids grow monotonically, so id order is acquisition order.
            lot_ids = [LotId(lot.id) for lot in orm_account.lots if lot.remaining_quantity > 0]
        return Account(
            id=AccountId(orm_account.id),
            currency=CurrencyCode(orm_account.currency),
            kind=kind,
            balance=orm_account.balance,
            lot_ids=lot_ids,
            short_quantity=orm_account.short_quantity,
        )


class LotRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, lots: Iterable[Lot]) -> list[Lot]:
        orm_lots = [
            models.LotOrm(
                id=lot.id,
                account_id=lot.account_id,
                acquired_on=lot.acquired_on,
                created_by=lot.created_by,
                original_quantity=lot.original_quantity,
                remaining_quantity=lot.remaining_quantity,
                unit_cost=lot.unit_cost,
            )
            for lot in lots
        ]
        self._session.add_all(orm_lots)
        self._session.commit()
        return [self._to_domain(orm_lot) for orm_lot in orm_lots]

    def list(self) -> list[Lot]:
        orm_lots = self._session.scalars(select(models.LotOrm).order_by(models.LotOrm.id)).all()
        return [self._to_domain(orm_lot) for orm_lot in orm_lots]

    def list_open(self, account_id: AccountId) -> list[Lot]:
        stmt = select(models.LotOrm).where(models.LotOrm.account_id == account_id).order_by(models.LotOrm.id)
        return [self._to_domain(orm_lot) for orm_lot in self._session.scalars(stmt) if orm_lot.remaining_quantity > 0]

    @staticmethod
    def _to_domain(orm_lot: models.LotOrm) -> Lot:
        return Lot(
            id=LotId(orm_lot.id),
            account_id=AccountId(orm_lot.account_id),
            acquired_on=orm_lot.acquired_on,
            created_by=Position(orm_lot.created_by),
            original_quantity=orm_lot.original_quantity,
            remaining_quantity=orm_lot.remaining_quantity,
            unit_cost=orm_lot.unit_cost,
        )


class GainLossRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, records: Iterable[GainLossRecord]) -> list[GainLossRecord]:
        orm_records = [
            models.GainLossRecordOrm(
                position=record.position,
                lot_id=record.lot_id,
                quantity=record.quantity,
                cost_basis=record.cost_basis,
                proceeds=record.proceeds,
                gain=record.gain,
                acquired_on=record.acquired_on,
                disposed_on=record.disposed_on,
                term=record.term.value,
            )
            for record in records
        ]
        self._session.add_all(orm_records)
        self._session.commit()
        return [self._to_domain(orm_record) for orm_record in orm_records]

    def list(self) -> list[GainLossRecord]:
        orm_records = self._session.scalars(
            select(models.GainLossRecordOrm).order_by(models.GainLossRecordOrm.id)
        ).all()
        return [self._to_domain(orm_record) for orm_record in orm_records]

    @staticmethod
    def _to_domain(orm_record: models.GainLossRecordOrm) -> GainLossRecord:
        return GainLossRecord(
            position=Position(orm_record.position),
            lot_id=LotId(orm_record.lot_id),
            quantity=orm_record.quantity,
            cost_basis=orm_record.cost_basis,
            proceeds=orm_record.proceeds,
            gain=orm_record.gain,
            acquired_on=orm_record.acquired_on,
            disposed_on=orm_record.disposed_on,
            term=HoldingTerm(orm_record.term),
        )


class IncomeRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, records: Iterable[IncomeRecord]) -> None:
        self._session.add_all(
            models.IncomeRecordOrm(
                position=record.position,
                account_id=record.account_id,
                quantity=record.quantity,
                amount=record.amount,
            )
            for record in records
        )
        self._session.commit()

    def list(self) -> list[IncomeRecord]:
        orm_records = self._session.scalars(select(models.IncomeRecordOrm).order_by(models.IncomeRecordOrm.id))
        return [
            IncomeRecord(
                position=Position(orm_record.position),
                account_id=AccountId(orm_record.account_id),
                quantity=orm_record.quantity,
                amount=orm_record.amount,
            )
            for orm_record in orm_records
        ]


class ExpenseRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, records: Iterable[ExpenseRecord]) -> None:
        self._session.add_all(
            models.ExpenseRecordOrm(
                position=record.position,
                account_id=record.account_id,
                quantity=record.quantity,
                amount=record.amount,
            )
            for record in records
        )
        self._session.commit()

    def list(self) -> list[ExpenseRecord]:
        orm_records = self._session.scalars(select(models.ExpenseRecordOrm).order_by(models.ExpenseRecordOrm.id))
        return [
            ExpenseRecord(
                position=Position(orm_record.position),
                account_id=AccountId(orm_record.account_id),
                quantity=orm_record.quantity,
                amount=orm_record.amount,
            )
            for orm_record in orm_records
        ]


class LedgerStateRepository:
    """Store a finished run and read it back as a ``LedgerState``."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self.accounts = AccountRepository(session)
        self.lots = LotRepository(session)
        self.gain_loss_records = GainLossRecordRepository(session)
        self.income_records = IncomeRecordRepository(session)
        self.expense_records = ExpenseRecordRepository(session)

    def save(self, state: LedgerState) -> None:
        if state.status != RunStatus.COMPLETED:
            raise ValueError(f"Only completed runs can be stored, got status {state.status}")
        self._session.add(
            models.LedgerRunOrm(
                home_currency=state.home_currency, status=state.status.value, processed=state.processed
            )
        )
        self.accounts.create_many(state.accounts.values())
        self.lots.create_many(state.lots.values())
        self.gain_loss_records.create_many(state.gain_loss_records)
        self.income_records.create_many(state.income_records)
        self.expense_records.create_many(state.expense_records)

    def load(self) -> LedgerState:
        run = self._session.scalars(select(models.LedgerRunOrm).order_by(models.LedgerRunOrm.id.desc())).first()
        if run is None:
            raise ValueError("No stored ledger run")
        return LedgerState(
            home_currency=CurrencyCode(run.home_currency),
            accounts={account.id: account for account in self.accounts.list()},
            lots={lot.id: lot for lot in self.lots.list()},
            gain_loss_records=self.gain_loss_records.list(),
            income_records=self.income_records.list(),
            expense_records=self.expense_records.list(),
            status=RunStatus(run.status),
            processed=run.processed,
        )
