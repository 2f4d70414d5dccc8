"""Poll scheduler — drives source → classify → publish → diff cycles."""

from __future__ import annotations

import concurrent.futures
import enum
import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from netwatch.capture.base import ConnectionSource, RawConnection
from netwatch.errors import SourceError
from netwatch.monitor.aggregate import summarize_by_port, summarize_by_process
from netwatch.monitor.changes import ChangeLog, diff
from netwatch.monitor.models import (
    ChangeEvent,
    Connection,
    ConnectionIdentity,
    PortSummary,
    ProcessSummary,
    Snapshot,
)
from netwatch.monitor.store import SnapshotStore
from netwatch.risk.classifier import RiskClassifier

logger = logging.getLogger(__name__)

# Largest exponent used in the backoff delay
_MAX_BACKOFF_EXPONENT = 32


class SchedulerState(enum.Enum):
    """Lifecycle state of the poll scheduler."""

    IDLE = "idle"
    POLLING = "polling"
    BACKOFF = "backoff"


class PollOutcome(enum.Enum):
    """What a single tick did."""

    PUBLISHED = "published"
    FAILED = "failed"
    DISCARDED = "discarded"  # another poll was already in flight
    DEFERRED = "deferred"  # backing off, retry time not reached
    ABANDONED = "abandoned"  # shutdown while polling


@dataclass(frozen=True)
class CycleResult:
    """Everything one successful poll produced."""

    snapshot: Snapshot
    previous: Snapshot | None
    events: tuple[ChangeEvent, ...]
    processes: tuple[ProcessSummary, ...]
    ports: tuple[PortSummary, ...]


class PollScheduler:
    """Explicit {idle, polling, backoff} state machine around the source.

    tick() runs at most one poll at a time: a tick that arrives while
    another is polling is discarded, not queued. Failures keep the last
    good snapshot and back off with a capped exponential delay measured on
    the injected ``clock``, so retry behaviour can be driven without real
    sleeps.
    """

    def __init__(
        self,
        source: ConnectionSource,
        store: SnapshotStore,
        change_log: ChangeLog,
        classifier: RiskClassifier | None = None,
        *,
        poll_timeout: float | None = 5.0,
        backoff_initial: float = 1.0,
        backoff_max: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        on_cycle: Callable[[CycleResult], None] | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._change_log = change_log
        self._classifier = classifier or RiskClassifier()
        self._poll_timeout = poll_timeout
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max
        self._clock = clock
        self._wall_clock = wall_clock
        self._on_cycle = on_cycle

        self._state = SchedulerState.IDLE
        self._poll_lock = threading.Lock()
        # Held while publishing and while stop() raises the stop flag;
        # reentrant for stop() from a signal handler on the polling thread
        self._commit_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._failures = 0
        self._retry_at = 0.0
        self._last_error: str | None = None
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        if poll_timeout is not None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="netwatch-source"
            )

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def failures(self) -> int:
        """Consecutive failed polls since the last success."""
        return self._failures

    @property
    def retry_at(self) -> float | None:
        """Clock reading at which a backed-off scheduler polls again."""
        return self._retry_at if self._state == SchedulerState.BACKOFF else None

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    def tick(self) -> PollOutcome:
        """Advance the state machine by one step."""
        if not self._poll_lock.acquire(blocking=False):
            logger.debug("Poll already in flight — tick discarded")
            return PollOutcome.DISCARDED
        try:
            if self._stop_event.is_set():
                return PollOutcome.ABANDONED
            if (
                self._state == SchedulerState.BACKOFF
                and self._clock() < self._retry_at
            ):
                return PollOutcome.DEFERRED
            self._state = SchedulerState.POLLING
            return self._poll()
        finally:
            if self._state == SchedulerState.POLLING:
                self._state = SchedulerState.IDLE
            self._poll_lock.release()

    def run(self, interval: float) -> None:
        """Blocking tick loop until stop() is called."""
        logger.info("Poll loop started (interval %.1fs)", interval)
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Poll cycle crashed — stopping the poll loop")
                self._stop_event.set()
                break
            self._stop_event.wait(timeout=self._next_wait(interval))
        logger.info("Poll loop stopped")

    def stop(self) -> None:
        """Signal the loop to stop. A poll still in flight is abandoned.

        Once this returns, no poll publishes a snapshot or appends events.
        """
        with self._commit_lock:
            self._stop_event.set()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _next_wait(self, interval: float) -> float:
        if self._state == SchedulerState.BACKOFF:
            return max(0.0, self._retry_at - self._clock())
        return interval

    def _poll(self) -> PollOutcome:
        captured_at = int(self._wall_clock() * 1000)
        try:
            raws = self._fetch()
        except SourceError as exc:
            if self._stop_event.is_set():
                return PollOutcome.ABANDONED
            return self._fail(exc)

        if self._stop_event.is_set():
            logger.info("Shutdown during poll — discarding %d sockets", len(raws))
            return PollOutcome.ABANDONED

        connections = self._classify_all(raws, captured_at)

        with self._commit_lock:
            if self._stop_event.is_set():
                logger.info("Shutdown during classification — snapshot not published")
                return PollOutcome.ABANDONED
            snapshot = Snapshot(
                sequence=self._store.next_sequence,
                captured_at=captured_at,
                connections=connections,
            )
            previous = self._store.publish(snapshot)
            events = diff(previous, snapshot)
            self._change_log.append(events)

        self._failures = 0
        self._last_error = None
        self._state = SchedulerState.IDLE
        logger.debug(
            "Poll %d: %d connections, %d changes",
            snapshot.sequence,
            len(snapshot),
            len(events),
        )

        if self._on_cycle is not None:
            self._on_cycle(
                CycleResult(
                    snapshot=snapshot,
                    previous=previous,
                    events=tuple(events),
                    processes=tuple(summarize_by_process(snapshot)),
                    ports=tuple(summarize_by_port(snapshot)),
                )
            )
        return PollOutcome.PUBLISHED

    def _fetch(self) -> list[RawConnection]:
        if self._executor is None:
            return list(self._source.fetch())

        try:
            future = self._executor.submit(self._source.fetch)
        except RuntimeError as exc:
            # Executor already shut down by stop()
            raise SourceError("Connection source is shut down") from exc
        try:
            return list(future.result(timeout=self._poll_timeout))
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            raise SourceError(
                f"Connection source did not answer within {self._poll_timeout}s"
            ) from exc

    def _fail(self, exc: SourceError) -> PollOutcome:
        self._failures += 1
        exponent = min(self._failures - 1, _MAX_BACKOFF_EXPONENT)
        delay = min(self._backoff_initial * 2**exponent, self._backoff_max)
        self._retry_at = self._clock() + delay
        self._last_error = str(exc)
        self._state = SchedulerState.BACKOFF
        logger.warning(
            "Connection source failed (%s) — retrying in %.1fs (attempt %d)",
            exc,
            delay,
            self._failures,
        )
        return PollOutcome.FAILED

    def _classify_all(
        self, raws: Iterable[RawConnection], captured_at: int
    ) -> tuple[Connection, ...]:
        seen: set[ConnectionIdentity] = set()
        conns: list[Connection] = []
        for raw in raws:
            risk, reasons = self._classifier.classify(raw)
            conn = Connection.from_raw(raw, risk, reasons, captured_at)
            if conn.identity in seen:
                logger.debug("Duplicate socket %s in one poll — keeping first", conn.identity)
                continue
            seen.add(conn.identity)
            conns.append(conn)
        return tuple(conns)
