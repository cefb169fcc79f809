from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class LedgerRunOrm(Base):
    __tablename__ = "ledger_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    home_currency: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    processed: Mapped[int] = mapped_column(Integer, nullable=False)


class AccountOrm(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    currency: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    balance: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    short_quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)

    lots: Mapped[list["LotOrm"]] = relationship(
        back_populates="account", cascade="all, delete-orphan", order_by="LotOrm.id"
    )


class LotOrm(Base):
    __tablename__ = "lots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)
    acquired_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    original_quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    remaining_quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)

    account: Mapped[AccountOrm] = relationship(back_populates="lots")
    gain_loss_records: Mapped[list["GainLossRecordOrm"]] = relationship(
        back_populates="lot", cascade="all, delete-orphan"
    )


class GainLossRecordOrm(Base):
    __tablename__ = "gain_loss_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    lot_id: Mapped[int] = mapped_column(Integer, ForeignKey("lots.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    cost_basis: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    proceeds: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    gain: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    acquired_on: Mapped[date] = mapped_column(Date, nullable=False)
    disposed_on: Mapped[date] = mapped_column(Date, nullable=False)
    term: Mapped[str] = mapped_column(String, nullable=False)

    lot: Mapped[LotOrm] = relationship(back_populates="gain_loss_records")


class IncomeRecordOrm(Base):
    __tablename__ = "income_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class ExpenseRecordOrm(Base):
    __tablename__ = "expense_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
