from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .ledger import AccountKind, Transaction, TransactionType


@dataclass(frozen=True)
class LikeKindPolicy:
    """Deferral of gains on asset-to-asset exchanges dated on or before ``cutoff``.

    A policy without a cutoff is disabled and never applies.
    """

    cutoff: date | None = None

    @property
    def enabled(self) -> bool:
        return self.cutoff is not None

    def applies(self, transaction: Transaction, destination_kind: AccountKind | None) -> bool:
        if self.cutoff is None:
            return False
        if transaction.type != TransactionType.EXCHANGE:
            return False
        if destination_kind is None or destination_kind == AccountKind.HOME_CURRENCY:
            return False
        return transaction.occurred_on <= self.cutoff
