"""Tests for the SQL-backed rewrite cache."""

import threading

import pytest

from news_headlines import db


@pytest.fixture
def session_factory(tmp_path):
    engine = db.init_engine(f"sqlite:///{tmp_path / 'rewrites.db'}")
    return db.get_session_factory(engine)


def test_init_engine_without_connection_string_returns_none():
    assert db.init_engine(None) is None


def test_put_and_get_rewrite(session_factory, clock):
    cache = db.SqlRewriteCache(session_factory, ttl_seconds=3600, clock=clock)

    cache.put("Original headline", "Sharper headline")
    assert cache.get("Original headline") == "Sharper headline"

    cache.put("Original headline", "Even sharper headline")
    assert cache.get("Original headline") == "Even sharper headline"
    assert len(cache) == 1


def test_stale_rows_are_misses_and_purged(session_factory, clock):
    cache = db.SqlRewriteCache(session_factory, ttl_seconds=60, clock=clock)
    cache.put("Original", "Rewritten")

    clock.advance(60)

    assert cache.get("Original") is None
    assert cache.purge_expired() == 1
    assert len(cache) == 0


def test_capacity_drops_oldest_rows(session_factory, clock):
    cache = db.SqlRewriteCache(session_factory, capacity=2, clock=clock)
    for name in ("first", "second", "third"):
        cache.put(name, name.upper())
        clock.advance(1)

    assert cache.get("first") is None
    assert cache.get("second") == "SECOND"
    assert cache.get("third") == "THIRD"
    assert len(cache) == 2


def test_capacity_drops_least_recently_used_row(session_factory, clock):
    cache = db.SqlRewriteCache(session_factory, capacity=2, clock=clock)
    cache.put("first", "FIRST")
    clock.advance(1)
    cache.put("second", "SECOND")
    clock.advance(1)
    assert cache.get("first") == "FIRST"
    clock.advance(1)

    cache.put("third", "THIRD")

    assert cache.get("second") is None
    assert cache.get("first") == "FIRST"
    assert cache.get("third") == "THIRD"


def test_clear_removes_all_rows(session_factory, clock):
    cache = db.SqlRewriteCache(session_factory, clock=clock)
    cache.put("first", "FIRST")
    cache.put("second", "SECOND")

    cache.clear()

    assert len(cache) == 0
    assert cache.get("first") is None


def test_concurrent_puts_of_same_heading_do_not_fail(session_factory):
    # Both writers read "no row" before either inserts.
    barrier = threading.Barrier(2, timeout=5)

    def clock():
        barrier.wait()
        return 1_000_000.0

    cache = db.SqlRewriteCache(session_factory, clock=clock)
    errors = []

    def writer(rewritten):
        try:
            cache.put("Shared heading", rewritten)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [
        threading.Thread(target=writer, args=(text,)) for text in ("One", "Two")
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert len(cache) == 1
    with session_factory() as session:
        row = session.get(db.RewriteModel, "Shared heading")
        assert row.rewritten in {"One", "Two"}
