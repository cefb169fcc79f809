from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from .ledger import AccountId, Position

if TYPE_CHECKING:
    from .accounts import LedgerState


class LedgerError(Exception):
    """Base class for everything the ledger engine raises.

    ``state`` is attached by the engine when a run aborts, so callers can
    inspect the ledger as it stood right before the failing transaction.
    """

    def __init__(self, message: str, *, position: Position | None = None) -> None:
        super().__init__(message)
        self.position = position
        self.state: LedgerState | None = None


class ConfigurationError(LedgerError):
    pass


class MalformedTransaction(LedgerError):
    def __init__(self, message: str, *, position: Position | None = None) -> None:
        prefix = f"transaction #{position}: " if position is not None else ""
        super().__init__(f"{prefix}{message}", position=position)


class InsufficientBalance(LedgerError):
    def __init__(
        self,
        *,
        account_id: AccountId,
        requested: Decimal,
        available: Decimal,
        position: Position | None = None,
    ) -> None:
        self.account_id = account_id
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        message = (
            f"Insufficient balance in account={account_id} "
            f"requested={requested} available={available} shortfall={self.shortfall}"
        )
        if position is not None:
            message = f"transaction #{position}: {message}"
        super().__init__(message, position=position)
