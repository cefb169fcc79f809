from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from domain.accounts import LedgerState
from domain.costing import CostingMethod
from domain.engine import LedgerEngine
from domain.ledger import CurrencyCode
from tests.helpers.ledger_builders import DEFAULT_ACCOUNTS, TransactionLog

engine: Engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def ledger_engine() -> LedgerEngine:
    return LedgerEngine(home_currency="USD", costing_method=CostingMethod.FIFO)


@pytest.fixture(scope="function")
def lifo_engine() -> LedgerEngine:
    return LedgerEngine(home_currency="USD", costing_method=CostingMethod.LIFO)


@pytest.fixture(scope="function")
def ledger_state() -> LedgerState:
    state = LedgerState(home_currency=CurrencyCode("USD"))
    for spec in DEFAULT_ACCOUNTS:
        state.open_account(spec.id, spec.currency, spec.kind)
    return state


@pytest.fixture(scope="function")
def txn_log() -> TransactionLog:
    return TransactionLog()
