from __future__ import annotations

import logging
from csv import DictReader
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from domain.errors import MalformedTransaction
from domain.ledger import AccountId, AccountKind, AccountSpec, CurrencyCode, Position, Transaction, TransactionType

logger = logging.getLogger(__name__)

US_DATE_FORMAT = "%m/%d/%y"
ISO_DATE_FORMAT = "%Y-%m-%d"

TRANSACTION_COLUMNS = ("date", "type", "source", "destination", "quantity")

TYPE_ALIASES = {
    "BUY": TransactionType.ACQUISITION,
    "PURCHASE": TransactionType.ACQUISITION,
    "SELL": TransactionType.EXCHANGE,
    "SALE": TransactionType.EXCHANGE,
    "TRADE": TransactionType.EXCHANGE,
    "DISPOSAL": TransactionType.EXCHANGE,
    "EXPENSE": TransactionType.SPEND,
    "REWARD": TransactionType.INCOME,
    "MINING": TransactionType.INCOME,
}

KIND_ALIASES = {
    "HOME": AccountKind.HOME_CURRENCY,
    "FIAT": AccountKind.HOME_CURRENCY,
}


def _empty_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _required(value: str | None) -> str:
    # DictReader fills the missing cells of a short row with None.
    value = _empty_to_none(value)
    if value is None:
        raise ValueError("value is required")
    return value


def _clean_number(value: str | None) -> str | None:
    value = _empty_to_none(value)
    if value is None:
        return None
    return value.replace(",", "")


class CsvAccountRow(BaseModel):
    id: str
    currency: str
    kind: AccountKind

    @field_validator("id", "currency", mode="before")
    @classmethod
    def _strip(cls, value: str | None) -> str:
        return _required(value)

    @field_validator("currency")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: str | AccountKind | None) -> AccountKind:
        if isinstance(value, AccountKind):
            return value
        code = _required(value).upper().replace("-", "_").replace(" ", "_")
        return KIND_ALIASES.get(code) or AccountKind(code)


class CsvTransactionRow(BaseModel):
    date: str
    type: TransactionType
    source: str | None = None
    destination: str | None = None
    quantity: Decimal
    counter_quantity: Decimal | None = None
    unit_value: Decimal | None = None
    memo: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: str | TransactionType | None) -> TransactionType:
        if isinstance(value, TransactionType):
            return value
        code = _required(value).upper()
        return TYPE_ALIASES.get(code) or TransactionType(code)

    @field_validator("source", "destination", mode="before")
    @classmethod
    def _optional_text(cls, value: str | None) -> str | None:
        return _empty_to_none(value)

    @field_validator("quantity", "counter_quantity", "unit_value", mode="before")
    @classmethod
    def _exact_number(cls, value: str | Decimal | None) -> str | Decimal | None:
        if isinstance(value, Decimal):
            return value
        return _clean_number(value)

    @field_validator("memo", mode="before")
    @classmethod
    def _memo(cls, value: str | None) -> str:
        return (value or "").strip()


def load_accounts(path: Path) -> list[AccountSpec]:
    """Read ``id,currency,kind`` rows describing every account the log refers to."""
    accounts: list[AccountSpec] = []
    with path.open(encoding="utf-8", newline="") as handle:
        reader = DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError(f"Accounts CSV {path} is empty or missing headers")
        missing = {"id", "currency", "kind"} - set(reader.fieldnames)
        if missing:
            raise ValueError(f"Accounts CSV {path} missing required columns: {', '.join(sorted(missing))}")

        for line_number, row in enumerate(reader, start=2):
            try:
                parsed = CsvAccountRow.model_validate(row)
            except ValidationError as err:
                raise ValueError(f"Accounts CSV {path} line {line_number}: {err}") from err
            accounts.append(
                AccountSpec(id=AccountId(parsed.id), currency=CurrencyCode(parsed.currency), kind=parsed.kind)
            )

    logger.info("Loaded %d accounts from %s", len(accounts), path)
    return accounts


class CsvTransactionImporter:
    """Turn a transactions CSV into the ordered log the engine consumes.

    Positions follow file order starting at 1; rows are never re-sorted.
    """

    def __init__(self, source_path: str | Path, *, date_format: str = US_DATE_FORMAT) -> None:
        self._source_path = Path(source_path)
        self._date_format = date_format

    def load_transactions(self) -> list[Transaction]:
        transactions: list[Transaction] = []
        with self._source_path.open(encoding="utf-8", newline="") as handle:
            reader = DictReader(handle)
            if reader.fieldnames is None:
                raise ValueError(f"Transactions CSV {self._source_path} is empty or missing headers")
            missing = set(TRANSACTION_COLUMNS) - set(reader.fieldnames)
            if missing:
                raise ValueError(
                    f"Transactions CSV {self._source_path} missing required columns: {', '.join(sorted(missing))}"
                )

            for index, row in enumerate(reader, start=1):
                transactions.append(self._build_transaction(Position(index), row))

        logger.info("Loaded %d transactions from %s", len(transactions), self._source_path)
        return transactions

    def _build_transaction(self, position: Position, row: dict[str, str]) -> Transaction:
        try:
            parsed = CsvTransactionRow.model_validate(row)
            return Transaction(
                position=position,
                occurred_on=self._parse_date(parsed.date),
                type=parsed.type,
                source_account_id=AccountId(parsed.source) if parsed.source else None,
                destination_account_id=AccountId(parsed.destination) if parsed.destination else None,
                quantity=parsed.quantity,
                counter_quantity=parsed.counter_quantity,
                unit_value=parsed.unit_value,
                memo=parsed.memo,
            )
        except (ValidationError, ValueError) as err:
            raise MalformedTransaction(str(err), position=position) from err

    def _parse_date(self, raw: str) -> date:
        return datetime.strptime(raw.strip(), self._date_format).date()
