from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import load_settings
from db.db import init_db
from db.repositories import LedgerStateRepository
from domain.accounts import LedgerState
from domain.engine import LedgerEngine
from domain.errors import LedgerError
from importers.csv_importer import ISO_DATE_FORMAT, US_DATE_FORMAT, CsvTransactionImporter, load_accounts
from utils.account_summary import compute_account_summaries, render_account_summaries
from utils.transaction_summary import compute_transaction_results, render_transaction_results

logger = logging.getLogger(__name__)


def run(
    accounts_csv: Path,
    transactions_csv: Path,
    *,
    overrides: dict[str, object],
    iso_dates: bool = False,
    db_file: Path | None = None,
    show_lots: bool = False,
) -> LedgerState:
    settings = load_settings(**overrides)
    engine = LedgerEngine.from_settings(settings)

    accounts = load_accounts(accounts_csv)
    importer = CsvTransactionImporter(transactions_csv, date_format=ISO_DATE_FORMAT if iso_dates else US_DATE_FORMAT)
    transactions = importer.load_transactions()

    state = engine.process(transactions, accounts=accounts)

    if db_file is not None:
        logger.info("Persisting results to %s", db_file)
        session = init_db(db_file)
        LedgerStateRepository(session).save(state)

    summaries = compute_account_summaries(state)
    render_account_summaries(summaries, home_currency=settings.home_currency, show_lots=show_lots)
    print()
    render_transaction_results(compute_transaction_results(state), home_currency=settings.home_currency)
    return state


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute cost basis and realized gains from a transaction log.")
    parser.add_argument("--accounts", type=Path, default=Path("data/accounts.csv"))
    parser.add_argument("--transactions", type=Path, default=Path("data/transactions.csv"))
    parser.add_argument("--method", help="FIFO, LIFO, FIFO_BY_CREATION, LIFO_BY_CREATION or legacy code 1-4")
    parser.add_argument("--currency", help="Home currency all values are denominated in")
    parser.add_argument("--lk-cutoff", help="Apply like-kind treatment through this date (%%Y-%%m-%%d)")
    parser.add_argument("--long-term-days", type=int)
    parser.add_argument("--iso-dates", action="store_true", help="Transaction dates use %%Y-%%m-%%d")
    parser.add_argument("--db", type=Path, default=None, help="Store the finished run in this SQLite file")
    parser.add_argument("--show-lots", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    overrides: dict[str, object] = {}
    if args.method is not None:
        overrides["costing_method"] = args.method
    if args.currency is not None:
        overrides["home_currency"] = args.currency
    if args.lk_cutoff is not None:
        overrides["like_kind_cutoff"] = args.lk_cutoff
    if args.long_term_days is not None:
        overrides["long_term_days"] = args.long_term_days

    try:
        run(
            args.accounts,
            args.transactions,
            overrides=overrides,
            iso_dates=args.iso_dates,
            db_file=args.db,
            show_lots=args.show_lots,
        )
    except (LedgerError, ValueError, OSError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
