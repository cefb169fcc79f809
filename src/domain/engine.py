from __future__ import annotations

import logging
from datetime import timedelta
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import TYPE_CHECKING, Iterable, assert_never

from .accounts import LedgerState
from .costing import CostingMethod
from .errors import ConfigurationError, LedgerError, MalformedTransaction
from .gains import DEFAULT_LONG_TERM_THRESHOLD, allocate_proceeds, calculate_gain_loss
from .ledger import (
    MAX_SIGNIFICANT_DIGITS,
    Account,
    AccountId,
    AccountKind,
    AccountSpec,
    CurrencyCode,
    ExpenseRecord,
    IncomeRecord,
    LotPortion,
    RunStatus,
    Transaction,
    TransactionType,
)
from .like_kind import LikeKindPolicy

if TYPE_CHECKING:
    from config import LedgerSettings

logger = logging.getLogger(__name__)

# Fixed arithmetic context so results never depend on the caller's decimal settings.
LEDGER_DECIMAL_CONTEXT = Context(prec=MAX_SIGNIFICANT_DIGITS, rounding=ROUND_HALF_EVEN)


class LedgerEngine:
    """Fold an ordered transaction log over a ``LedgerState``.

    Transactions are applied strictly in the order given. Each one is
    validated and checked for available balance before anything is mutated,
    so when a transaction fails the state is left as it was after the
    previous one, marked ABORTED and attached to the raised error.
    """

    def __init__(
        self,
        *,
        home_currency: str = "USD",
        costing_method: CostingMethod | str = CostingMethod.FIFO,
        like_kind: LikeKindPolicy | None = None,
        long_term_threshold: timedelta = DEFAULT_LONG_TERM_THRESHOLD,
    ) -> None:
        self.home_currency = CurrencyCode(home_currency)
        try:
            self.costing_method = CostingMethod.parse(costing_method)
        except ValueError as err:
            raise ConfigurationError(f"unknown costing method {costing_method!r}") from err
        self.like_kind = like_kind or LikeKindPolicy()
        self.long_term_threshold = long_term_threshold

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> LedgerEngine:
        return cls(
            home_currency=settings.home_currency,
            costing_method=settings.costing_method,
            like_kind=settings.like_kind_policy,
            long_term_threshold=settings.long_term_threshold,
        )

    def new_state(self, accounts: Iterable[AccountSpec] = ()) -> LedgerState:
        state = LedgerState(home_currency=self.home_currency)
        for spec in accounts:
            state.open_account(spec.id, spec.currency, spec.kind)
        return state

    def process(
        self,
        transactions: Iterable[Transaction],
        *,
        accounts: Iterable[AccountSpec] = (),
        state: LedgerState | None = None,
    ) -> LedgerState:
        """Caller must provide transactions in chronological order."""
        if state is None:
            state = self.new_state(accounts)
        else:
            for spec in accounts:
                state.open_account(spec.id, spec.currency, spec.kind)
        state.status = RunStatus.PROCESSING

        logger.info(
            "Processing ledger: method=%s home=%s like-kind cutoff=%s",
            self.costing_method,
            self.home_currency,
            self.like_kind.cutoff,
        )
        with localcontext(LEDGER_DECIMAL_CONTEXT):
            for transaction in transactions:
                try:
                    self.apply(state, transaction)
                except LedgerError as err:
                    state.status = RunStatus.ABORTED
                    err.state = state
                    if err.position is None:
                        err.position = transaction.position
                    logger.error("Ledger run aborted at transaction #%s: %s", transaction.position, err)
                    raise
                state.processed += 1

        state.status = RunStatus.COMPLETED
        logger.info(
            "Ledger completed: %d transactions, %d gain/loss records, %d income, %d expense",
            state.processed,
            len(state.gain_loss_records),
            len(state.income_records),
            len(state.expense_records),
        )
        return state

    def apply(self, state: LedgerState, transaction: Transaction) -> None:
        logger.debug("Applying %s #%s on %s", transaction.type, transaction.position, transaction.occurred_on)
        if transaction.quantity <= 0:
            raise MalformedTransaction(
                f"quantity must be positive, got {transaction.quantity}", position=transaction.position
            )

        match transaction.type:
            case TransactionType.DEPOSIT:
                self._deposit(state, transaction)
            case TransactionType.WITHDRAWAL:
                self._withdrawal(state, transaction)
            case TransactionType.ACQUISITION:
                self._acquisition(state, transaction)
            case TransactionType.EXCHANGE:
                self._exchange(state, transaction)
            case TransactionType.SPEND:
                self._spend(state, transaction)
            case TransactionType.INCOME:
                self._income(state, transaction)
            case TransactionType.TRANSFER:
                self._transfer(state, transaction)
            case _:
                assert_never(transaction.type)

    def _deposit(self, state: LedgerState, txn: Transaction) -> None:
        destination = self._destination(state, txn, kinds={AccountKind.HOME_CURRENCY})
        state.deposit(destination, txn.quantity)

    def _withdrawal(self, state: LedgerState, txn: Transaction) -> None:
        source = self._source(state, txn, kinds={AccountKind.HOME_CURRENCY})
        state.withdraw(source, txn.quantity)

    def _acquisition(self, state: LedgerState, txn: Transaction) -> None:
        source = self._source(state, txn, kinds={AccountKind.HOME_CURRENCY})
        destination = self._destination(state, txn, kinds={AccountKind.ASSET, AccountKind.MARGIN})
        outflow = self._counter_or_value(txn)
        state.record_acquisition(
            destination,
            txn.quantity,
            outflow / txn.quantity,
            txn.occurred_on,
            position=txn.position,
        )
        state.withdraw(source, outflow)

    def _exchange(self, state: LedgerState, txn: Transaction) -> None:
        source = self._source(state, txn, kinds={AccountKind.ASSET, AccountKind.MARGIN})
        destination = self._destination(state, txn, kinds=set(AccountKind))
        if destination.currency == source.currency:
            raise MalformedTransaction(
                f"exchange between two {source.currency} accounts, use a transfer instead", position=txn.position
            )

        if destination.kind == AccountKind.HOME_CURRENCY:
            proceeds = self._counter_or_value(txn)
            portions = state.consume(source, txn.quantity, self.costing_method, position=txn.position)
            self._record_gains(state, txn, portions, proceeds)
            state.deposit(destination, proceeds)
            return

        received = self._require_positive(txn.counter_quantity, "counter_quantity (units received)", txn)
        proceeds = txn.quantity * self._require_unit_value(txn)
        portions = state.consume(source, txn.quantity, self.costing_method, position=txn.position)

        if self.like_kind.applies(txn, destination.kind):
            logger.debug("Deferring gain on like-kind exchange #%s", txn.position)
            self._carry_basis(state, txn, destination, portions, received)
            return

        self._record_gains(state, txn, portions, proceeds)
        state.record_acquisition(destination, received, proceeds / received, txn.occurred_on, position=txn.position)

    def _spend(self, state: LedgerState, txn: Transaction) -> None:
        source = self._source(state, txn, kinds={AccountKind.ASSET, AccountKind.MARGIN})
        if txn.destination_account_id is not None:
            raise MalformedTransaction("spend must not have a destination account", position=txn.position)
        amount = self._counter_or_value(txn)
        portions = state.consume(source, txn.quantity, self.costing_method, position=txn.position)
        self._record_gains(state, txn, portions, amount)
        state.expense_records.append(
            ExpenseRecord(position=txn.position, account_id=source.id, quantity=txn.quantity, amount=amount)
        )

    def _income(self, state: LedgerState, txn: Transaction) -> None:
        destination = self._destination(state, txn, kinds=set(AccountKind))
        if txn.source_account_id is not None:
            raise MalformedTransaction("income must not have a source account", position=txn.position)
        if destination.kind == AccountKind.HOME_CURRENCY:
            unit_value = Decimal(1)
        else:
            unit_value = self._require_unit_value(txn)
        state.record_acquisition(destination, txn.quantity, unit_value, txn.occurred_on, position=txn.position)
        state.income_records.append(
            IncomeRecord(
                position=txn.position,
                account_id=destination.id,
                quantity=txn.quantity,
                amount=txn.quantity * unit_value,
            )
        )

    def _transfer(self, state: LedgerState, txn: Transaction) -> None:
        source = self._source(state, txn, kinds=set(AccountKind))
        destination = self._destination(state, txn, kinds=set(AccountKind))
        if source.currency != destination.currency or source.id == destination.id:
            raise MalformedTransaction(
                "transfer needs two distinct accounts of the same currency", position=txn.position
            )

        if source.kind == AccountKind.HOME_CURRENCY:
            state.withdraw(source, txn.quantity)
            state.deposit(destination, txn.quantity)
            return

        portions = state.consume(source, txn.quantity, self.costing_method, position=txn.position)
        moved = sum((portion.quantity for portion in portions), start=Decimal(0))
        for portion in portions:
            state.record_acquisition(
                destination,
                portion.quantity,
                portion.unit_cost,
                portion.acquired_on,
                position=txn.position,
                carried_basis=True,
            )
        # Uncovered margin quantity arrives without a known basis.
        if moved < txn.quantity:
            state.record_acquisition(
                destination,
                txn.quantity - moved,
                Decimal(0),
                txn.occurred_on,
                position=txn.position,
                carried_basis=True,
            )

    def _record_gains(
        self,
        state: LedgerState,
        txn: Transaction,
        portions: list[LotPortion],
        total_proceeds: Decimal,
    ) -> None:
        covered = sum((portion.quantity for portion in portions), start=Decimal(0))
        if covered < txn.quantity:
            # Part of a margin disposal had no lot behind it; only the covered share is realized.
            total_proceeds = total_proceeds * covered / txn.quantity
        for portion, proceeds in zip(portions, allocate_proceeds(total_proceeds, portions)):
            state.gain_loss_records.append(
                calculate_gain_loss(
                    portion,
                    proceeds,
                    disposed_on=txn.occurred_on,
                    position=txn.position,
                    long_term_threshold=self.long_term_threshold,
                )
            )

    def _carry_basis(
        self,
        state: LedgerState,
        txn: Transaction,
        destination: Account,
        portions: list[LotPortion],
        received: Decimal,
    ) -> None:
        """Spread the consumed lots' basis and dates over the received units."""
        covered = sum((portion.quantity for portion in portions), start=Decimal(0))
        if covered == 0:
            state.record_acquisition(
                destination, received, Decimal(0), txn.occurred_on, position=txn.position, carried_basis=True
            )
            return

        allocated = Decimal(0)
        for index, portion in enumerate(portions):
            if index == len(portions) - 1:
                quantity = received - allocated
            else:
                quantity = received * portion.quantity / covered
            allocated += quantity
            state.record_acquisition(
                destination,
                quantity,
                portion.cost_basis / quantity,
                portion.acquired_on,
                position=txn.position,
                carried_basis=True,
            )

    def _source(self, state: LedgerState, txn: Transaction, *, kinds: set[AccountKind]) -> Account:
        return self._resolve(state, txn, txn.source_account_id, "source", kinds)

    def _destination(self, state: LedgerState, txn: Transaction, *, kinds: set[AccountKind]) -> Account:
        return self._resolve(state, txn, txn.destination_account_id, "destination", kinds)

    @staticmethod
    def _resolve(
        state: LedgerState,
        txn: Transaction,
        account_id: AccountId | None,
        role: str,
        kinds: set[AccountKind],
    ) -> Account:
        if account_id is None:
            raise MalformedTransaction(f"{txn.type} requires a {role} account", position=txn.position)
        account = state.account(account_id, position=txn.position)
        if account.kind not in kinds:
            expected = "/".join(sorted(kind.value for kind in kinds))
            raise MalformedTransaction(
                f"{txn.type} {role} {account_id} is {account.kind}, expected {expected}", position=txn.position
            )
        return account

    def _counter_or_value(self, txn: Transaction) -> Decimal:
        """Home-currency side of a trade: the stated amount, else quantity times fair value."""
        if txn.counter_quantity is not None:
            if txn.counter_quantity <= 0:
                raise MalformedTransaction(
                    f"counter_quantity must be positive, got {txn.counter_quantity}", position=txn.position
                )
            return txn.counter_quantity
        return txn.quantity * self._require_unit_value(txn)

    @staticmethod
    def _require_unit_value(txn: Transaction) -> Decimal:
        if txn.unit_value is None:
            raise MalformedTransaction(f"{txn.type} requires a unit value", position=txn.position)
        if txn.unit_value <= 0:
            raise MalformedTransaction(f"unit value must be positive, got {txn.unit_value}", position=txn.position)
        return txn.unit_value

    @staticmethod
    def _require_positive(value: Decimal | None, name: str, txn: Transaction) -> Decimal:
        if value is None or value <= 0:
            raise MalformedTransaction(f"{name} must be positive, got {value}", position=txn.position)
        return value
