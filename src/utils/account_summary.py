from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from domain.accounts import LedgerState
from domain.ledger import AccountKind

from .formatting import format_currency, format_decimal


@dataclass
class LotSummary:
    lot_id: int
    acquired_on: date
    quantity: Decimal
    unit_cost: Decimal
    cost_basis: Decimal


@dataclass
class AccountSummary:
    account_id: str
    currency: str
    kind: AccountKind
    balance: Decimal
    cost_basis: Decimal
    lots: list[LotSummary]


def compute_account_summaries(state: LedgerState) -> list[AccountSummary]:
    """Point-in-time holdings and remaining basis for every account."""
    summaries: list[AccountSummary] = []
    for account_id, account in sorted(state.accounts.items()):
        lots = [
            LotSummary(
                lot_id=lot.id,
                acquired_on=lot.acquired_on,
                quantity=lot.remaining_quantity,
                unit_cost=lot.unit_cost,
                cost_basis=lot.cost_basis,
            )
            for lot in state.open_lots(account_id)
        ]
        summaries.append(
            AccountSummary(
                account_id=account_id,
                currency=account.currency,
                kind=account.kind,
                balance=state.balance(account_id),
                cost_basis=sum((lot.cost_basis for lot in lots), start=Decimal(0)),
                lots=lots,
            )
        )
    return summaries


def render_account_summaries(summaries: list[AccountSummary], *, home_currency: str, show_lots: bool = False) -> None:
    print("Accounts:")
    if not summaries:
        print("  (no accounts)")
        return

    basis_label = f"Basis {home_currency}"
    rows = [
        (
            summary.account_id,
            summary.currency,
            summary.kind.value,
            format_decimal(summary.balance),
            "" if summary.kind == AccountKind.HOME_CURRENCY else format_currency(summary.cost_basis),
            str(len(summary.lots)),
        )
        for summary in summaries
    ]
    labels = ("Account", "Currency", "Kind", "Balance", basis_label, "Lots")
    widths = [max(len(label), max(len(row[idx]) for row in rows)) for idx, label in enumerate(labels)]

    header = (
        f"{labels[0]:<{widths[0]}} {labels[1]:<{widths[1]}} {labels[2]:<{widths[2]}} "
        f"{labels[3]:>{widths[3]}} {labels[4]:>{widths[4]}} {labels[5]:>{widths[5]}}"
    )
    lines = [header, "-" * len(header)]
    for summary, row in zip(summaries, rows):
        lines.append(
            f"{row[0]:<{widths[0]}} {row[1]:<{widths[1]}} {row[2]:<{widths[2]}} "
            f"{row[3]:>{widths[3]}} {row[4]:>{widths[4]}} {row[5]:>{widths[5]}}"
        )
        if show_lots:
            for lot in summary.lots:
                lines.append(
                    f"    lot {lot.lot_id} {lot.acquired_on} qty={format_decimal(lot.quantity)} "
                    f"unit={format_currency(lot.unit_cost)} basis={format_currency(lot.cost_basis)}"
                )

    print("\n".join(lines))
