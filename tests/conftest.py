# This project was developed with assistance from AI tools.
"""Shared fixtures.

Every test gets its own ledger, session store and engine so state from
one test never leaks into the next. ``client`` wires those same instances
into the real FastAPI app through dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from walletbot.main import app
from walletbot.services.conversation import ConversationEngine, get_conversation_engine
from walletbot.services.i18n import Translator
from walletbot.services.ledger import LoanLedger, get_loan_ledger
from walletbot.services.sessions import SessionStore


@pytest.fixture
def ledger():
    return LoanLedger(max_pending_per_applicant=3)


@pytest.fixture
def store():
    return SessionStore(ttl_seconds=0, stripes=8)


@pytest.fixture
def translator():
    return Translator(default_language="en")


@pytest.fixture
def engine(store, ledger, translator):
    return ConversationEngine(store, ledger, translator)


@pytest.fixture
def client(engine, ledger):
    """TestClient backed by this test's engine and ledger."""
    app.dependency_overrides[get_conversation_engine] = lambda: engine
    app.dependency_overrides[get_loan_ledger] = lambda: ledger
    yield TestClient(app)
    app.dependency_overrides.clear()
