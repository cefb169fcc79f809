from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from domain.accounts import LedgerState
from domain.engine import LedgerEngine
from domain.ledger import AccountKind, TransactionType
from tests.helpers.ledger_builders import BANK, BTC_WALLET, DEFAULT_ACCOUNTS, ETH_WALLET, TransactionLog
from utils.account_summary import compute_account_summaries, render_account_summaries
from utils.formatting import format_currency, format_decimal
from utils.transaction_summary import compute_transaction_results, render_transaction_results


def _run(ledger_engine: LedgerEngine, txn_log: TransactionLog) -> LedgerState:
    txn_log.buy("2", cost="200", on=date(2018, 1, 1))
    txn_log.buy("1", cost="400", on=date(2018, 6, 1))
    txn_log.sell("2.5", proceeds="1250", on=date(2019, 3, 1))
    txn_log.add(TransactionType.INCOME, on=date(2019, 3, 2), quantity="2", destination=ETH_WALLET, unit_value="100")
    txn_log.add(TransactionType.SPEND, on=date(2019, 3, 3), quantity="1", source=ETH_WALLET, unit_value="130")
    return ledger_engine.process(txn_log.transactions, accounts=DEFAULT_ACCOUNTS)


def test_account_summaries(ledger_engine: LedgerEngine, txn_log: TransactionLog) -> None:
    state = _run(ledger_engine, txn_log)

    summaries = {summary.account_id: summary for summary in compute_account_summaries(state)}

    assert summaries[BANK].kind == AccountKind.HOME_CURRENCY
    assert summaries[BANK].balance == Decimal("650")
    assert summaries[BTC_WALLET].balance == Decimal("0.5")
    assert summaries[BTC_WALLET].cost_basis == Decimal("200")
    assert len(summaries[BTC_WALLET].lots) == 1
    assert summaries[ETH_WALLET].cost_basis == Decimal("100")


def test_transaction_results(ledger_engine: LedgerEngine, txn_log: TransactionLog) -> None:
    state = _run(ledger_engine, txn_log)

    results = compute_transaction_results(state)

    assert [result.position for result in results] == [3, 4, 5]
    sale, income, spend = results
    assert sale.proceeds == Decimal("1250")
    assert sale.cost_basis == Decimal("400")
    assert sale.long_term_gain == Decimal("800")
    assert sale.short_term_gain == Decimal("50")
    assert sale.gain == Decimal("850")
    assert income.income == Decimal("200")
    assert spend.expense == Decimal("130")
    assert spend.gain == Decimal("30")


def test_renderers_print_tables(
    ledger_engine: LedgerEngine, txn_log: TransactionLog, capsys: pytest.CaptureFixture[str]
) -> None:
    state = _run(ledger_engine, txn_log)

    render_account_summaries(compute_account_summaries(state), home_currency="USD", show_lots=True)
    render_transaction_results(compute_transaction_results(state), home_currency="USD")

    output = capsys.readouterr().out
    assert "Basis USD" in output
    assert "btc-wallet" in output
    assert "800.00" in output
    assert "1250.00" in output
    assert "Total" in output


def test_renderers_handle_empty_input(capsys: pytest.CaptureFixture[str]) -> None:
    render_account_summaries([], home_currency="USD")
    render_transaction_results([], home_currency="USD")

    output = capsys.readouterr().out
    assert "(no accounts)" in output
    assert "(no realized results)" in output


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("1E+3"), "1000.00"),
        (Decimal("0.125"), "0.12"),
        (Decimal("-0.001"), "0.00"),
        (Decimal("-12.345"), "-12.34"),
    ],
)
def test_format_currency(value: Decimal, expected: str) -> None:
    assert format_currency(value) == expected


def test_format_decimal_avoids_exponents() -> None:
    assert format_decimal(Decimal("1E+3")) == "1000"
    assert format_decimal(Decimal("0.50000")) == "0.5"
