"""Host-facing feed source wiring cache, storage, engine and scheduler together."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import httpx
import structlog

from .cache import LookupCache
from .config import ConfigRepository, FeedConfig, GlobalConfig
from .engine import FeedDownloader, FeedParser, FieldMapEncoder, RecordEncoder, RevisionFetcher, build_client
from .infra import FeedStore
from .logging_conf import feed_logger
from .records import FeedRecord
from .scheduler import APSchedulerAdapter
from .sync import SyncOutcome, SyncScheduler, Timer


class FeedSource:
    """One reputation feed: lookups for the host, background sync for itself.

    Every collaborator can be injected; anything not supplied is built from
    ``config``. Clients and timers created here are closed by :meth:`stop`.
    """

    def __init__(
        self,
        config: FeedConfig,
        *,
        store_dir: Path,
        global_config: GlobalConfig | None = None,
        timer: Timer | None = None,
        client: httpx.Client | None = None,
        encoder: RecordEncoder | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.name = config.feed_name
        self.logger = logger or feed_logger(config.feed_name)
        self._owns_client = client is None
        self.client = client or build_client(global_config, timeout=config.request_timeout)
        self._owns_timer = timer is None
        self.timer = timer or APSchedulerAdapter()

        key = config.resolved_key()
        self.cache = LookupCache()
        self.store = FeedStore(store_dir, config.feed_name)
        self.parser = FeedParser(
            encoder or FieldMapEncoder(config.fields),
            delimiter=config.delimiter,
            min_fields=config.min_fields,
            key_column=config.key_column,
            logger=self.logger,
        )
        self.revision_fetcher = RevisionFetcher(
            self.client,
            config.revision_url,
            key,
            requires_key=config.requires_key,
            timeout=config.request_timeout,
            logger=self.logger,
        )
        self.downloader = FeedDownloader(
            self.client,
            config.data_url,
            key,
            timeout=config.download_timeout,
            max_bytes=config.max_download_bytes,
            logger=self.logger,
        )
        self.scheduler = SyncScheduler(
            config.feed_name,
            cache=self.cache,
            store=self.store,
            revision_fetcher=self.revision_fetcher,
            downloader=self.downloader,
            parser=self.parser,
            timer=self.timer,
            schedule=config.schedule,
            retry_delay=config.retry_delay,
            logger=self.logger,
        )

    @classmethod
    def from_repository(
        cls, repository: ConfigRepository, feed_name: str, **kwargs: object
    ) -> "FeedSource":
        config = repository.load_feed(feed_name)
        kwargs.setdefault("global_config", repository.load_global_config())
        return cls(config, store_dir=repository.feed_store_dir(config), **kwargs)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return not self.scheduler.state.disabled

    def start(self) -> bool:
        return self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()
        if self._owns_timer and isinstance(self.timer, APSchedulerAdapter):
            self.timer.shutdown()
        if self._owns_client:
            self.client.close()

    def sync_now(self) -> SyncOutcome:
        return self.scheduler.run_cycle()

    def load_local(self) -> bool:
        return self.scheduler.load_local()

    def get(self, key: str) -> FeedRecord | None:
        return self.cache.lookup(key)

    def dump(self) -> Iterator[tuple[str, FeedRecord]]:
        return self.cache.dump()

    def status(self) -> dict:
        data = self.scheduler.state.snapshot()
        data["feed"] = self.name
        data["entries"] = self.cache.size
        return data

    def __enter__(self) -> "FeedSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


__all__ = ["FeedSource"]
