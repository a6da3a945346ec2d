# This project was developed with assistance from AI tools.
"""Tests for the anchored-window rate limiter and its JSON state store."""

import asyncio
import json
import threading
import time
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from navigator.schemas.rate_limit import ClientRecord
from navigator.services.rate_limit import PersistenceError, RateLimiter, RateLimitStore

HOUR_MS = 60 * 60 * 1000
WINDOW_MS = 12 * HOUR_MS


def _persisted(path) -> dict:
    return json.loads(path.read_text())


# -- Quota --


def test_first_request_allowed_and_persisted(limiter, clock, state_path):
    decision = limiter.check_and_record("1.2.3.4_abc")
    assert decision.allowed is True
    assert decision.remaining == 29
    assert decision.limit == 30
    assert decision.reset_at == datetime.fromtimestamp((clock.now + WINDOW_MS) / 1000, tz=UTC)

    data = _persisted(state_path)
    assert data == {
        "1.2.3.4_abc": {"count": 1, "firstRequest": clock.now, "lastRequest": clock.now}
    }


def test_quota_exhaustion_denies_with_zero_remaining(limiter, clock):
    """31st request inside 12 hours is denied; reset is firstRequest + 12h."""
    first = clock.now
    for i in range(30):
        decision = limiter.check_and_record("client")
        assert decision.allowed is True
        assert decision.remaining == 29 - i
        clock.advance(60_000)

    denied = limiter.check_and_record("client")
    assert denied.allowed is False
    assert denied.remaining == 0
    assert denied.reset_at == datetime.fromtimestamp((first + WINDOW_MS) / 1000, tz=UTC)


def test_denial_does_not_mutate_record(limiter, clock):
    for _ in range(30):
        limiter.check_and_record("client")
    before = limiter.get_record("client")
    clock.advance(1000)

    limiter.check_and_record("client")
    limiter.check_and_record("client")

    assert limiter.get_record("client") == before


def test_window_expiry_resets_count(limiter, clock):
    for _ in range(30):
        limiter.check_and_record("client")
    assert limiter.check_and_record("client").allowed is False

    clock.advance(WINDOW_MS + 1)
    decision = limiter.check_and_record("client")

    assert decision.allowed is True
    assert decision.remaining == 29
    record = limiter.get_record("client")
    assert record.count == 1
    assert record.first_request == clock.now


def test_exactly_at_window_boundary_is_still_same_window(limiter, clock):
    for _ in range(30):
        limiter.check_and_record("client")
    clock.advance(WINDOW_MS)
    assert limiter.check_and_record("client").allowed is False


def test_identifiers_are_independent(make_limiter):
    limiter = make_limiter(max_requests=1)
    assert limiter.check_and_record("a").allowed is True
    assert limiter.check_and_record("a").allowed is False
    assert limiter.check_and_record("b").allowed is True


# -- Persistence cadence --


def test_increments_persist_every_nth_request(limiter, state_path):
    limiter.check_and_record("client")
    for _ in range(3):
        limiter.check_and_record("client")
    assert _persisted(state_path)["client"]["count"] == 1

    limiter.check_and_record("client")  # count == 5
    assert _persisted(state_path)["client"]["count"] == 5


def test_persistence_failure_is_not_fatal(limiter, caplog):
    store = MagicMock()
    store.save.side_effect = PersistenceError("disk full")
    limiter._store = store

    decision = limiter.check_and_record("client")

    assert decision.allowed is True
    assert limiter.get_record("client").count == 1
    assert "Failed to save rate limits" in caplog.text


# -- Status --


def test_status_for_unknown_client_reports_full_quota(limiter):
    status = limiter.get_status("nobody")
    assert status.remaining == 30
    assert status.reset_at is None
    assert status.is_limited is False


def test_status_is_read_only(limiter, state_path):
    limiter.check_and_record("client")
    before = state_path.read_text()

    for _ in range(10):
        status = limiter.get_status("client")

    assert status.remaining == 29
    assert limiter.get_record("client").count == 1
    assert state_path.read_text() == before


def test_status_of_expired_record_reports_full_quota(limiter, clock):
    limiter.check_and_record("client")
    clock.advance(WINDOW_MS + 1)
    status = limiter.get_status("client")
    assert status.remaining == 30
    assert status.reset_at is None


def test_status_reports_limited_after_exhaustion(limiter):
    for _ in range(30):
        limiter.check_and_record("client")
    status = limiter.get_status("client")
    assert status.remaining == 0
    assert status.is_limited is True


# -- Sweep --


def test_sweep_removes_only_expired_records_and_persists_once(limiter, clock, state_path):
    limiter.check_and_record("old")
    clock.advance(6 * HOUR_MS)
    limiter.check_and_record("new")
    clock.advance(6 * HOUR_MS + 1)

    store = MagicMock(wraps=RateLimitStore(state_path))
    limiter._store = store

    assert limiter.sweep() == 1
    assert limiter.get_record("old") is None
    assert limiter.get_record("new") is not None
    store.save.assert_called_once()
    assert list(_persisted(state_path)) == ["new"]


def test_sweep_with_nothing_expired_does_not_write(limiter):
    limiter.check_and_record("client")
    store = MagicMock()
    limiter._store = store

    assert limiter.sweep() == 0
    store.save.assert_not_called()


@pytest.mark.asyncio
async def test_background_sweep_runs_and_stop_flushes(make_limiter, clock, state_path):
    limiter = make_limiter(sweep_interval=0.01)
    limiter.check_and_record("client")
    clock.advance(WINDOW_MS + 1)

    limiter.start()
    for _ in range(50):
        await asyncio.sleep(0.01)
        if len(limiter) == 0:
            break
    await limiter.stop()

    assert len(limiter) == 0
    assert limiter._sweep_task is None
    assert _persisted(state_path) == {}


@pytest.mark.asyncio
async def test_stop_without_start_still_flushes(limiter, state_path):
    limiter.check_and_record("client")
    limiter.check_and_record("client")
    await limiter.stop()
    assert _persisted(state_path)["client"]["count"] == 2


# -- Restart round-trip --


def test_reload_reproduces_decisions(make_limiter, clock):
    before = make_limiter()
    for _ in range(10):
        before.check_and_record("client")
    before.persist()

    after = make_limiter()
    assert after.load() == 1

    assert after.get_status("client") == before.get_status("client")
    a = before.check_and_record("client")
    b = after.check_and_record("client")
    assert (a.allowed, a.remaining, a.reset_at) == (b.allowed, b.remaining, b.reset_at)


def test_reload_of_exhausted_client_still_denies(make_limiter):
    before = make_limiter()
    for _ in range(30):
        before.check_and_record("client")
    before.persist()

    after = make_limiter()
    after.load()
    assert after.check_and_record("client").allowed is False


# -- Store --


def test_store_missing_file_is_empty(tmp_path):
    assert RateLimitStore(tmp_path / "none.json").load() == {}


def test_store_skips_malformed_records(state_path):
    state_path.write_text(
        json.dumps(
            {
                "good": {"count": 3, "firstRequest": 1, "lastRequest": 2},
                "bad": {"count": "lots"},
            }
        )
    )
    records = RateLimitStore(state_path).load()
    assert records == {"good": ClientRecord(count=3, first_request=1, last_request=2)}


def test_store_unreadable_json_raises_persistence_error(state_path):
    state_path.write_text("{not json")
    with pytest.raises(PersistenceError):
        RateLimitStore(state_path).load()


def test_limiter_load_survives_corrupt_file(limiter, state_path):
    state_path.write_text("[1, 2, 3]")
    assert limiter.load() == 0
    assert limiter.check_and_record("client").allowed is True


def test_store_save_leaves_no_temp_files(tmp_path):
    path = tmp_path / "state" / "limits.json"
    store = RateLimitStore(path)
    store.save({"x": ClientRecord(count=1, first_request=5, last_request=5)})
    assert [p.name for p in path.parent.iterdir()] == ["limits.json"]
    assert json.loads(path.read_text()) == {
        "x": {"count": 1, "firstRequest": 5, "lastRequest": 5}
    }


# -- Concurrency --


def test_concurrent_requests_never_exceed_quota(make_limiter):
    """Threads hammering one identifier get exactly the quota, no lost increments."""
    limiter = make_limiter(max_requests=30)
    barrier = threading.Barrier(64)
    results: list[bool] = []
    results_lock = threading.Lock()

    def _hit():
        barrier.wait()
        allowed = limiter.check_and_record("client").allowed
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=_hit) for _ in range(64)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 30
    assert results.count(False) == 34
    assert limiter.get_record("client").count == 30


class SlowStore(RateLimitStore):
    """Store whose writes take a noticeable amount of wall time."""

    def save(self, records):
        time.sleep(0.3)
        super().save(records)


@pytest.mark.asyncio
async def test_async_check_writes_state_off_the_event_loop(state_path, clock):
    limiter = RateLimiter(
        SlowStore(state_path), max_requests=30, window_ms=WINDOW_MS, clock=clock
    )

    pending = asyncio.create_task(limiter.check_and_record_async("client"))
    await asyncio.sleep(0)
    started = time.monotonic()
    await asyncio.sleep(0.01)
    assert time.monotonic() - started < 0.2

    decision = await pending
    assert decision.allowed is True
    assert _persisted(state_path)["client"]["count"] == 1


@pytest.mark.asyncio
async def test_async_check_matches_sync_decisions(make_limiter):
    async_limiter = make_limiter(max_requests=2)
    assert (await async_limiter.check_and_record_async("a")).remaining == 1
    assert (await async_limiter.check_and_record_async("a")).remaining == 0
    denied = await async_limiter.check_and_record_async("a")
    assert denied.allowed is False
    assert async_limiter.get_record("a").count == 2
