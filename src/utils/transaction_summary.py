from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from domain.accounts import LedgerState
from domain.ledger import HoldingTerm

from .formatting import format_currency


@dataclass
class TransactionResult:
    position: int
    proceeds: Decimal = Decimal(0)
    cost_basis: Decimal = Decimal(0)
    short_term_gain: Decimal = Decimal(0)
    long_term_gain: Decimal = Decimal(0)
    income: Decimal = Decimal(0)
    expense: Decimal = Decimal(0)

    @property
    def gain(self) -> Decimal:
        return self.short_term_gain + self.long_term_gain


def compute_transaction_results(state: LedgerState) -> list[TransactionResult]:
    """Aggregate realized gain/loss, income and expense per transaction position."""
    results: dict[int, TransactionResult] = {}

    def result_for(position: int) -> TransactionResult:
        if position not in results:
            results[position] = TransactionResult(position=position)
        return results[position]

    for record in state.gain_loss_records:
        result = result_for(record.position)
        result.proceeds += record.proceeds
        result.cost_basis += record.cost_basis
        if record.term == HoldingTerm.LONG:
            result.long_term_gain += record.gain
        else:
            result.short_term_gain += record.gain

    for income in state.income_records:
        result_for(income.position).income += income.amount

    for expense in state.expense_records:
        result_for(expense.position).expense += expense.amount

    return [results[position] for position in sorted(results)]


def render_transaction_results(results: Iterable[TransactionResult], *, home_currency: str) -> None:
    results_list = list(results)
    print(f"Transactions ({home_currency}):")
    if not results_list:
        print("  (no realized results)")
        return

    labels = ("#", "Proceeds", "Cost basis", "Short gain", "Long gain", "Income", "Expense")
    rows = [
        (
            str(row.position),
            format_currency(row.proceeds),
            format_currency(row.cost_basis),
            format_currency(row.short_term_gain),
            format_currency(row.long_term_gain),
            format_currency(row.income),
            format_currency(row.expense),
        )
        for row in results_list
    ]
    totals = (
        "Total",
        format_currency(sum((row.proceeds for row in results_list), start=Decimal(0))),
        format_currency(sum((row.cost_basis for row in results_list), start=Decimal(0))),
        format_currency(sum((row.short_term_gain for row in results_list), start=Decimal(0))),
        format_currency(sum((row.long_term_gain for row in results_list), start=Decimal(0))),
        format_currency(sum((row.income for row in results_list), start=Decimal(0))),
        format_currency(sum((row.expense for row in results_list), start=Decimal(0))),
    )
    widths = [max(len(label), *(len(row[idx]) for row in [*rows, totals])) for idx, label in enumerate(labels)]

    def line(cells: tuple[str, ...]) -> str:
        first = f"{cells[0]:<{widths[0]}}"
        rest = " ".join(f"{cell:>{widths[idx]}}" for idx, cell in enumerate(cells) if idx > 0)
        return f"{first} {rest}"

    header = line(labels)
    lines = [header, "-" * len(header)]
    lines.extend(line(row) for row in rows)
    lines.append("-" * len(header))
    lines.append(line(totals))
    print("\n".join(lines))
