# This project was developed with assistance from AI tools.
"""Per-client request throttling with durable state.

Each client gets ``max_requests`` requests per window. The window is
anchored at the client's first request and reset wholesale once it has
elapsed. Counters live in memory and are mirrored to a JSON file so a
restart mid-window does not hand out a fresh quota.

The module exposes a singleton initialised at app startup via
``init_rate_limiter()``; the limiter owns a background sweep task that
drops expired records.
"""

import asyncio
import contextlib
import json
import logging
import os
import tempfile
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from ..core.config import Settings
from ..schemas.rate_limit import ClientRecord

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when rate-limit state cannot be read from or written to disk."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


@dataclass(frozen=True)
class RateDecision:
    """Outcome of ``RateLimiter.check_and_record``."""

    allowed: bool
    remaining: int
    limit: int
    reset_at: datetime | None


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only view of a client's quota."""

    remaining: int
    reset_at: datetime | None
    is_limited: bool


class RateLimitStore:
    """Flat identifier -> record mapping stored as pretty-printed JSON."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, ClientRecord]:
        """Read all records. A missing file is an empty store.

        Raises:
            PersistenceError: The file exists but cannot be read or parsed.
        """
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read rate limit state {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise PersistenceError(f"Rate limit state {self._path} is not a JSON object")

        records: dict[str, ClientRecord] = {}
        for identifier, value in raw.items():
            try:
                records[identifier] = ClientRecord.model_validate(value)
            except ValidationError:
                logger.warning("Skipping malformed rate limit record for %s", identifier)
        return records

    def save(self, records: dict[str, ClientRecord]) -> None:
        """Rewrite the whole file through a temp file + atomic replace.

        Raises:
            PersistenceError: The state could not be written.
        """
        data = {key: record.model_dump(by_alias=True) for key, record in records.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise PersistenceError(f"Cannot write rate limit state {self._path}: {exc}") from exc


class RateLimiter:
    """Anchored-window request counter keyed by client identifier."""

    def __init__(
        self,
        store: RateLimitStore,
        *,
        max_requests: int,
        window_ms: int,
        persist_every: int = 5,
        sweep_interval: float = 3600.0,
        clock: Callable[[], int] = _now_ms,
    ):
        self._store = store
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._persist_every = persist_every
        self._sweep_interval = sweep_interval
        self._clock = clock

        self._records: dict[str, ClientRecord] = {}
        self._lock = threading.Lock()
        # Serialises snapshot+write so older snapshots never overwrite newer ones
        self._persist_lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get_record(self, identifier: str) -> ClientRecord | None:
        """Return the stored record (expired or not), for inspection."""
        with self._lock:
            return self._records.get(identifier)

    def _expired(self, record: ClientRecord, now: int) -> bool:
        return now - record.first_request > self._window_ms

    def _reset_at(self, record: ClientRecord) -> datetime:
        return ms_to_datetime(record.first_request + self._window_ms)

    # -- persistence --

    def load(self) -> int:
        """Replace in-memory state with the persisted state; return record count."""
        try:
            records = self._store.load()
        except PersistenceError:
            logger.error("Failed to load rate limits, starting empty", exc_info=True)
            return 0
        with self._lock:
            self._records = records
        logger.info("Rate limits loaded from %s (%d records)", self._store.path, len(records))
        return len(records)

    def persist(self) -> bool:
        """Write the current state; failures are logged, never raised."""
        with self._persist_lock:
            with self._lock:
                snapshot = dict(self._records)
            try:
                self._store.save(snapshot)
            except PersistenceError:
                logger.error("Failed to save rate limits", exc_info=True)
                return False
        return True

    # -- request path --

    def _count(self, identifier: str) -> tuple[RateDecision, bool]:
        """Apply one request to the in-memory state; return (decision, needs_save)."""
        now = self._clock()
        save = False
        with self._lock:
            record = self._records.get(identifier)

            if record is None or self._expired(record, now):
                record = ClientRecord(count=1, first_request=now, last_request=now)
                self._records[identifier] = record
                save = True
            elif record.count >= self._max_requests:
                denied = RateDecision(
                    allowed=False,
                    remaining=0,
                    limit=self._max_requests,
                    reset_at=self._reset_at(record),
                )
                return denied, False
            else:
                record = record.model_copy(
                    update={"count": record.count + 1, "last_request": now}
                )
                self._records[identifier] = record
                save = record.count % self._persist_every == 0

            decision = RateDecision(
                allowed=True,
                remaining=max(0, self._max_requests - record.count),
                limit=self._max_requests,
                reset_at=self._reset_at(record),
            )
        return decision, save

    def check_and_record(self, identifier: str) -> RateDecision:
        """Count one request for ``identifier`` and decide whether it may proceed."""
        decision, save = self._count(identifier)
        if save:
            self.persist()
        return decision

    async def check_and_record_async(self, identifier: str) -> RateDecision:
        """Like ``check_and_record`` but writes state in the default executor.

        Counting stays on the event loop, only the file write is moved off it.
        """
        decision, save = self._count(identifier)
        if save:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.persist)
        return decision

    def get_status(self, identifier: str) -> RateLimitStatus:
        """Report remaining quota without touching state."""
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or self._expired(record, now):
                return RateLimitStatus(
                    remaining=self._max_requests, reset_at=None, is_limited=False
                )
            return RateLimitStatus(
                remaining=max(0, self._max_requests - record.count),
                reset_at=self._reset_at(record),
                is_limited=record.count >= self._max_requests,
            )

    # -- housekeeping --

    def sweep(self) -> int:
        """Drop every record whose window has elapsed; return how many went."""
        now = self._clock()
        with self._lock:
            expired = [key for key, rec in self._records.items() if self._expired(rec, now)]
            for key in expired:
                del self._records[key]

        if expired:
            logger.info("Cleaned %d expired rate limit entries", len(expired))
            self.persist()
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, self.sweep)
            except Exception:
                logger.exception("Rate limit sweep failed")

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(), name="rate-limit-sweep"
            )

    async def stop(self) -> None:
        """Cancel the sweep task and flush state one last time."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.persist)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_limiter: RateLimiter | None = None


def build_rate_limiter(cfg: Settings) -> RateLimiter:
    """Construct a limiter from settings and load its persisted state."""
    limiter = RateLimiter(
        RateLimitStore(cfg.RATE_LIMIT_STATE_PATH),
        max_requests=cfg.RATE_LIMIT_MAX_REQUESTS,
        window_ms=cfg.rate_limit_window_ms,
        persist_every=cfg.RATE_LIMIT_PERSIST_EVERY,
        sweep_interval=cfg.RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
    )
    limiter.load()
    return limiter


def init_rate_limiter(cfg: Settings) -> RateLimiter:
    """Initialise the singleton (called once from app lifespan)."""
    global _limiter  # noqa: PLW0603
    _limiter = build_rate_limiter(cfg)
    logger.info(
        "RateLimiter initialised (max=%d, window=%sh, records=%d)",
        cfg.RATE_LIMIT_MAX_REQUESTS,
        cfg.RATE_LIMIT_WINDOW_HOURS,
        len(_limiter),
    )
    return _limiter


def get_rate_limiter() -> RateLimiter:
    """Return the initialised RateLimiter singleton."""
    if _limiter is None:
        raise RuntimeError("RateLimiter not initialised -- call init_rate_limiter() first")
    return _limiter
