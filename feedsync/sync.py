"""Synchronisation state machine driving revision check, download and publish."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Callable, Protocol

import structlog

from .cache import LookupCache
from .config import ScheduleConfig
from .engine import FeedDownloader, FeedParser, ParseResult, RevisionCheck, RevisionFetcher
from .exceptions import DownloadError, ParseError, PermanentConfigError, TransientNetworkError
from .infra import FeedStore


class SyncPhase(str, Enum):
    """Where the current (or last) cycle is."""

    IDLE = "idle"
    CHECKING_REVISION = "checking_revision"
    DOWNLOADING = "downloading"
    PARSING = "parsing"
    RETRY_SCHEDULED = "retry_scheduled"


class SyncOutcome(str, Enum):
    """Result of a single cycle."""

    UPDATED = "updated"
    RESTORED = "restored"
    UNCHANGED = "unchanged"
    RETRY_SCHEDULED = "retry_scheduled"
    DISABLED = "disabled"


@dataclass(slots=True)
class SyncState:
    phase: SyncPhase = SyncPhase.IDLE
    revision: str | None = None
    last_error: str | None = None
    retry_pending: bool = False
    disabled: bool = False
    last_attempt_at: datetime | None = None
    last_success_at: datetime | None = None
    cycles: int = 0
    loaded: int = 0
    skipped: int = 0

    def snapshot(self) -> dict:
        data = asdict(self)
        data["phase"] = self.phase.value
        for key in ("last_attempt_at", "last_success_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


class Timer(Protocol):
    """Subset of APSchedulerAdapter the state machine depends on."""

    def schedule_periodic(
        self,
        job_id: str,
        callback: Callable[[], object],
        schedule: ScheduleConfig,
        *,
        run_immediately: bool = False,
    ) -> None:
        ...

    def schedule_once(self, job_id: str, callback: Callable[[], object], delay: float) -> None:
        ...

    def remove_job(self, job_id: str) -> None:
        ...

    def start(self) -> None:
        ...


_RETRYABLE = (TransientNetworkError, DownloadError, ParseError)


class SyncScheduler:
    """Own SyncState and run one cycle at a time, on timer ticks or on demand."""

    def __init__(
        self,
        feed_name: str,
        *,
        cache: LookupCache,
        store: FeedStore,
        revision_fetcher: RevisionFetcher,
        downloader: FeedDownloader,
        parser: FeedParser,
        timer: Timer,
        schedule: ScheduleConfig | None = None,
        retry_delay: float = 5 * 60,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.feed_name = feed_name
        self.cache = cache
        self.store = store
        self.revision_fetcher = revision_fetcher
        self.downloader = downloader
        self.parser = parser
        self.timer = timer
        self.schedule = schedule or ScheduleConfig()
        self.retry_delay = retry_delay
        self.logger = logger or structlog.get_logger("feedsync.sync").bind(feed=feed_name)
        self.state = SyncState()
        self._cycle_lock = Lock()
        self._retry_lock = Lock()
        self.periodic_job_id = f"feed::{feed_name}"
        self.retry_job_id = f"feed::{feed_name}::retry"
        try:
            self.revision_fetcher.check_config()
        except PermanentConfigError as exc:
            self._disable(exc)

    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Register the periodic job (first run immediately); False when disabled."""

        if self.state.disabled:
            self.logger.info("sync_not_started", reason=self.state.last_error)
            return False
        self.timer.schedule_periodic(
            self.periodic_job_id, self.run_cycle, self.schedule, run_immediately=True
        )
        self.timer.start()
        return True

    def stop(self) -> None:
        self.timer.remove_job(self.periodic_job_id)
        with self._retry_lock:
            if self.state.retry_pending:
                self.timer.remove_job(self.retry_job_id)
                self.state.retry_pending = False

    def run_cycle(self) -> SyncOutcome:
        if self.state.disabled:
            return SyncOutcome.DISABLED
        # a tick arriving mid-cycle waits for the running cycle to finish
        with self._cycle_lock:
            if self.state.disabled:
                return SyncOutcome.DISABLED
            self.state.cycles += 1
            self.state.last_attempt_at = datetime.now(timezone.utc)
            try:
                return self._sync()
            except PermanentConfigError as exc:
                self._disable(exc)
                return SyncOutcome.DISABLED
            except _RETRYABLE as exc:
                self.logger.warning(
                    "sync_failed",
                    phase=self.state.phase.value,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                return self._schedule_retry(exc)
            except Exception as exc:  # noqa: BLE001
                self.logger.exception("sync_crashed", phase=self.state.phase.value)
                return self._schedule_retry(exc)

    def load_local(self) -> bool:
        """Publish the committed local payload without touching the network."""

        if self.state.disabled:
            return False
        with self._cycle_lock:
            known = self.store.read_revision()
            if known is None:
                return False
            self._enter(SyncPhase.PARSING)
            try:
                result = self.parser.parse(self.store.payload_path, revision=known.token)
            except ParseError as exc:
                self.logger.warning("local_payload_unreadable", error=str(exc))
                self.state.last_error = f"{type(exc).__name__}: {exc}"
                self._enter(SyncPhase.IDLE)
                return False
            check = RevisionCheck(token=known.token, unchanged=True, status_code=0)
            self._publish(result, check, commit=False)
            return True

    # ------------------------------------------------------------------
    def _sync(self) -> SyncOutcome:
        known = self.store.read_revision()
        self._enter(SyncPhase.CHECKING_REVISION)
        check = self.revision_fetcher.fetch_revision(known)

        if check.unchanged and self.cache.loaded:
            self.logger.info("revision_unchanged", revision=check.token)
            self._clear_retry()
            self._enter(SyncPhase.IDLE)
            return SyncOutcome.UNCHANGED

        if check.unchanged and self.store.has_payload():
            # nothing published yet but the local payload already matches the remote revision
            self._enter(SyncPhase.PARSING)
            result = self.parser.parse(self.store.payload_path, revision=check.token)
            self._publish(result, check, commit=False)
            return SyncOutcome.RESTORED

        self.logger.info(
            "revision_changed",
            revision=check.token,
            previous=known.token if known else None,
        )
        self._enter(SyncPhase.DOWNLOADING)
        try:
            self.downloader.download(self.store.staging_path)
            self._enter(SyncPhase.PARSING)
            result = self.parser.parse(self.store.staging_path, revision=check.token)
        except Exception:
            # the committed payload keeps describing the committed revision
            self.store.discard_staging()
            raise
        self._publish(result, check, commit=True)
        return SyncOutcome.UPDATED

    def _publish(self, result: ParseResult, check: RevisionCheck, *, commit: bool) -> None:
        if commit:
            # disk before cache
            self.store.promote_staging()
            self.store.commit_revision(
                check.token, etag=check.etag, last_modified=check.last_modified
            )
        self.cache.publish(result.table)
        self.state.revision = check.token
        self.state.loaded = len(result.table)
        self.state.skipped = result.skipped
        self.state.last_error = None
        self.state.last_success_at = datetime.now(timezone.utc)
        self._clear_retry()
        self._enter(SyncPhase.IDLE)
        self.logger.info(
            "feed_published",
            revision=check.token,
            entries=len(result.table),
            skipped=result.skipped,
        )

    def _enter(self, phase: SyncPhase) -> None:
        self.state.phase = phase

    def _schedule_retry(self, exc: BaseException) -> SyncOutcome:
        with self._retry_lock:
            self.state.last_error = f"{type(exc).__name__}: {exc}"
            self.state.phase = SyncPhase.RETRY_SCHEDULED
            if self.state.retry_pending:
                self.logger.info("retry_already_scheduled")
                return SyncOutcome.RETRY_SCHEDULED
            self.state.retry_pending = True
            self.timer.schedule_once(self.retry_job_id, self._on_retry_timer, self.retry_delay)
        self.logger.info("retry_scheduled", delay=self.retry_delay)
        return SyncOutcome.RETRY_SCHEDULED

    def _on_retry_timer(self) -> SyncOutcome:
        with self._retry_lock:
            # the timer has fired, so it no longer counts as outstanding
            self.state.retry_pending = False
        return self.run_cycle()

    def _clear_retry(self) -> None:
        with self._retry_lock:
            if self.state.retry_pending:
                self.timer.remove_job(self.retry_job_id)
                self.state.retry_pending = False

    def _disable(self, exc: PermanentConfigError) -> None:
        if self.state.disabled:
            return
        self.state.disabled = True
        self.state.phase = SyncPhase.IDLE
        self.state.last_error = str(exc)
        self.logger.error("feed_disabled", reason=str(exc))
        self.timer.remove_job(self.periodic_job_id)
        with self._retry_lock:
            if self.state.retry_pending:
                self.timer.remove_job(self.retry_job_id)
                self.state.retry_pending = False


__all__ = ["SyncOutcome", "SyncPhase", "SyncScheduler", "SyncState", "Timer"]
