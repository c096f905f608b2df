# This project was developed with assistance from AI tools.
"""Tests for the session store."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from walletbot.enums import StageKind
from walletbot.services.sessions import SessionStore


def test_get_or_create_reports_creation(store):
    session, created = store.get_or_create("+263770000001")
    assert created is True
    assert session.stage.kind == StageKind.ASK_PIN
    assert session.balance == Decimal("500.00")

    again, created = store.get_or_create("+263770000001")
    assert created is False
    assert again is session


def test_get_unknown_returns_none(store):
    assert store.get("nobody") is None


def test_delete(store):
    store.get_or_create("a")
    store.delete("a")
    store.delete("a")
    assert store.get("a") is None
    assert len(store) == 0


def test_idle_session_is_replaced():
    store = SessionStore(ttl_seconds=60, stripes=4)
    session, _ = store.get_or_create("a")
    session.name = "Tendai"
    session.last_seen = datetime.now(UTC) - timedelta(minutes=5)

    fresh, created = store.get_or_create("a")
    assert created is True
    assert fresh.name == ""


def test_zero_ttl_never_expires(store):
    session, _ = store.get_or_create("a")
    session.last_seen = datetime.now(UTC) - timedelta(days=30)
    assert store.get_or_create("a")[1] is False


def test_purge_expired():
    store = SessionStore(ttl_seconds=60, stripes=4)
    old, _ = store.get_or_create("old")
    store.get_or_create("new")
    old.last_seen = datetime.now(UTC) - timedelta(hours=1)

    assert store.purge_expired() == 1
    assert store.get("old") is None
    assert store.get("new") is not None


def test_locked_refreshes_last_seen(store):
    session, _ = store.get_or_create("a")
    stale = datetime.now(UTC) - timedelta(minutes=10)
    session.last_seen = stale
    with store.locked("a") as (locked_session, created):
        assert created is False
        assert locked_session is session
    assert session.last_seen > stale


def test_locked_serializes_one_identity(store):
    """Concurrent read-modify-write on one identity never loses an update."""
    store.get_or_create("a")
    barrier = threading.Barrier(8)

    def bump(_):
        barrier.wait()
        for _ in range(50):
            with store.locked("a") as (session, _created):
                balance = session.balance
                session.balance = balance + 1

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(bump, range(8)))

    assert store.get("a").balance == Decimal("500.00") + 400



def _age_all(store, count, age):
    sessions = [store.get_or_create(f"+2637700{i:05d}")[0] for i in range(count)]
    for session in sessions:
        session.last_seen = datetime.now(UTC) - age


def test_new_session_sweeps_expired_ones():
    store = SessionStore(ttl_seconds=60, stripes=4, purge_interval_seconds=0)
    _age_all(store, 100, timedelta(hours=1))

    store.get_or_create("latecomer")
    assert len(store) == 1
    assert store.get("latecomer") is not None


def test_sweep_waits_for_interval():
    store = SessionStore(ttl_seconds=60, stripes=4, purge_interval_seconds=3600)
    _age_all(store, 100, timedelta(hours=1))

    store.get_or_create("latecomer")
    assert len(store) == 101


def test_sweep_keeps_active_sessions():
    store = SessionStore(ttl_seconds=60, stripes=4, purge_interval_seconds=0)
    _age_all(store, 10, timedelta(hours=1))
    store.get_or_create("recent")

    store.get_or_create("latecomer")
    assert store.get("recent") is not None
    assert len(store) == 2


def test_no_sweep_without_ttl():
    store = SessionStore(ttl_seconds=0, stripes=4, purge_interval_seconds=0)
    _age_all(store, 10, timedelta(days=30))

    store.get_or_create("latecomer")
    assert len(store) == 11
