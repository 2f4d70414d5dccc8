"""Monitor facade — the boundary presentation layers talk to."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from netwatch.capture.base import ConnectionSource
from netwatch.config import NetWatchConfig
from netwatch.export import write_export
from netwatch.monitor.aggregate import (
    summarize_by_port,
    summarize_by_process,
    summarize_stats,
)
from netwatch.monitor.changes import ChangeLog
from netwatch.monitor.filters import ConnectionFilter, apply_filters
from netwatch.monitor.models import (
    ChangeEvent,
    Connection,
    ConnectionStats,
    PortSummary,
    ProcessSummary,
    Snapshot,
)
from netwatch.monitor.scheduler import (
    CycleResult,
    PollOutcome,
    PollScheduler,
    SchedulerState,
)
from netwatch.monitor.store import SnapshotStore
from netwatch.risk.classifier import RiskClassifier
from netwatch.risk.loader import load_profile

logger = logging.getLogger(__name__)


class NetWatchMonitor:
    """Owns the snapshot store, change log, and poll scheduler.

    Readers never block on a poll: every getter works against the snapshot
    that was current when it was called. Before the first successful poll
    the getters raise SourceUnavailable, which is distinct from an empty
    snapshot.
    """

    def __init__(
        self,
        source: ConnectionSource,
        config: NetWatchConfig | None = None,
        classifier: RiskClassifier | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        on_cycle: Callable[[CycleResult], None] | None = None,
    ) -> None:
        self._config = config or NetWatchConfig.load()
        self._store = SnapshotStore()
        self._change_log = ChangeLog(self._config.event_log_size)
        self._source = source
        self._classifier = classifier
        self._clock = clock
        self._wall_clock = wall_clock
        self._on_cycle = on_cycle
        self._scheduler = self._build_scheduler()
        self._thread: threading.Thread | None = None

    @property
    def config(self) -> NetWatchConfig:
        return self._config

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the poll loop on a daemon thread."""
        if self.is_running:
            return
        if self._scheduler.is_stopped:
            # A stopped scheduler stays stopped; restarts get a fresh one
            self._scheduler = self._build_scheduler()
        self._thread = threading.Thread(
            target=self._scheduler.run,
            args=(self._config.poll_interval,),
            name="netwatch-poll",
            daemon=True,
        )
        self._thread.start()
        logger.info("Monitoring started (poll every %.1fs)", self._config.poll_interval)

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling and release the store. Safe to call twice."""
        self._scheduler.stop()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._store.clear()
        self._change_log.clear()

    def _build_scheduler(self) -> PollScheduler:
        return PollScheduler(
            self._source,
            self._store,
            self._change_log,
            self._classifier,
            poll_timeout=self._config.poll_timeout,
            backoff_initial=self._config.backoff_initial,
            backoff_max=self._config.backoff_max,
            clock=self._clock,
            wall_clock=self._wall_clock,
            on_cycle=self._on_cycle,
        )

    def refresh(self) -> PollOutcome:
        """Poll now, on the caller's thread."""
        return self._scheduler.tick()

    @property
    def current_sequence(self) -> int | None:
        snapshot = self._store.current()
        return snapshot.sequence if snapshot is not None else None

    def snapshot(self) -> Snapshot:
        return self._store.require_current()

    def get_connections(self, filters: ConnectionFilter | None = None) -> list[Connection]:
        return apply_filters(self._store.require_current().connections, filters)

    def get_recent_changes(self, limit: int | None = None) -> list[ChangeEvent]:
        if limit is None:
            limit = self._config.recent_changes_limit
        return self._change_log.recent(limit)

    def get_process_summaries(self) -> list[ProcessSummary]:
        return summarize_by_process(self._store.require_current())

    def get_port_summaries(self) -> list[PortSummary]:
        return summarize_by_port(self._store.require_current())

    def get_stats(self) -> ConnectionStats:
        return summarize_stats(self._store.require_current())

    def export_snapshot(self, fmt: str, directory: str | Path | None = None) -> Path:
        """Write the current snapshot to disk; returns the file path."""
        snapshot = self._store.require_current()
        return write_export(snapshot, fmt, directory or self._config.export_dir)


def create_monitor(
    config: NetWatchConfig | None = None,
    source: ConnectionSource | None = None,
    on_cycle: Callable[[CycleResult], None] | None = None,
) -> NetWatchMonitor:
    """Build a monitor from config: psutil source, rules from ``rules_path``."""
    config = config or NetWatchConfig.load()
    if source is None:
        from netwatch.capture.psutil_ import PsutilSource

        source = PsutilSource()

    classifier = None
    if config.rules_path is not None:
        profile = load_profile(config.rules_path)
        classifier = RiskClassifier.from_profile(profile)
        logger.info("Loaded risk profile from %s", config.rules_path)

    return NetWatchMonitor(source, config, classifier, on_cycle=on_cycle)
