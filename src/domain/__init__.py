"""Domain models and the lot-matching engine.

This package contains the in-memory (Pydantic) models describing accounts,
lots, transactions and the records a run produces, plus the engine folding a
transaction log over them. They are independent from persistence models so
that business logic and testing can evolve without DB coupling.
"""

__all__ = [
    "accounts",
    "costing",
    "engine",
    "errors",
    "gains",
    "ledger",
    "like_kind",
]
