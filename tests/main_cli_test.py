from __future__ import annotations

from pathlib import Path

import pytest

from main import main

ACCOUNTS = """id,currency,kind
bank,USD,home
wallet,BTC,asset
"""

TRANSACTIONS = """date,type,source,destination,quantity,counter_quantity,unit_value,memo
2018-01-01,deposit,,bank,1000,,,
2018-01-02,buy,bank,wallet,2,200,,
2018-06-01,buy,bank,wallet,1,400,,
2018-09-01,sell,wallet,bank,2.5,,500,
"""


@pytest.fixture()
def input_files(tmp_path: Path) -> tuple[Path, Path]:
    accounts = tmp_path / "accounts.csv"
    transactions = tmp_path / "transactions.csv"
    accounts.write_text(ACCOUNTS, encoding="utf-8")
    transactions.write_text(TRANSACTIONS, encoding="utf-8")
    return accounts, transactions


def test_cli_runs_and_persists(
    input_files: tuple[Path, Path], tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    accounts, transactions = input_files
    db_file = tmp_path / "out" / "ledger.db"

    exit_code = main(
        ["--accounts", str(accounts), "--transactions", str(transactions), "--iso-dates", "--db", str(db_file)]
    )

    assert exit_code == 0
    assert db_file.exists()
    output = capsys.readouterr().out
    assert "Accounts:" in output
    assert "Transactions (USD):" in output
    assert "850.00" in output


def test_cli_reports_insufficient_balance(
    input_files: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    accounts, transactions = input_files
    transactions.write_text(TRANSACTIONS + "2018-09-02,sell,wallet,bank,1,,500,\n", encoding="utf-8")

    exit_code = main(["--accounts", str(accounts), "--transactions", str(transactions), "--iso-dates"])

    assert exit_code == 1
    assert "Insufficient balance" in capsys.readouterr().err


def test_cli_rejects_bad_method(input_files: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
    accounts, transactions = input_files

    exit_code = main(["--accounts", str(accounts), "--transactions", str(transactions), "--method", "HIFO"])

    assert exit_code == 1
    assert "costing method" in capsys.readouterr().err


def test_cli_reports_missing_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--accounts", str(tmp_path / "none.csv"), "--transactions", str(tmp_path / "none.csv")])

    assert exit_code == 1
    assert "error: " in capsys.readouterr().err
