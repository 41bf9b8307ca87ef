"""Feed configuration files under the feedsync home directory.

Layout below the home (``FEEDSYNC_HOME``, default ``~/.feedsync``)::

    config.yaml            optional GlobalConfig (read only)
    feeds/<slug>.yaml      one FeedConfig per feed, written by ``feedsync feed add``
    store/                 payload and revision files (see FeedStore)
    logs/                  see feedsync.logging_conf
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..infra.storage import atomic_write_text, feed_slug
from .models import FeedConfig, GlobalConfig

FEED_SUFFIXES = (".yaml", ".yml")


def feedsync_home() -> Path:
    env_root = os.environ.get("FEEDSYNC_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path.home() / ".feedsync"


def _load_mapping(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


@dataclass(slots=True)
class ConfigLocator:
    """Directories of one feedsync home; created on first use."""

    root: Path | None = None

    def __post_init__(self) -> None:
        self.root = (self.root or feedsync_home()).expanduser().resolve()
        for directory in (self.feeds_dir, self.store_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def feeds_dir(self) -> Path:
        return self.root / "feeds"

    @property
    def store_dir(self) -> Path:
        return self.root / "store"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def global_config_path(self) -> Path:
        return self.root / "config.yaml"


class ConfigRepository:
    """Read and write the feed definitions ``FeedSource`` and the CLI work from."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        """Shared HTTP settings; defaults when ``config.yaml`` is absent."""

        if self._global is None:
            path = self.locator.global_config_path
            if path.is_file():
                self._global = GlobalConfig.model_validate(_load_mapping(path))
            else:
                self._global = GlobalConfig()
        return self._global

    def feed_path(self, feed_name: str) -> Path:
        return self.locator.feeds_dir / f"{feed_slug(feed_name)}.yaml"

    def has_feed(self, feed_name: str) -> bool:
        return self.feed_path(feed_name).is_file()

    def list_feeds(self) -> list[FeedConfig]:
        paths = sorted(
            path for path in self.locator.feeds_dir.iterdir() if path.suffix in FEED_SUFFIXES
        )
        return [self._load_path(path) for path in paths]

    def load_feed(self, feed_name: str) -> FeedConfig:
        path = self.feed_path(feed_name)
        if not path.is_file():
            raise FileNotFoundError(f"Feed configuration not found: {feed_name}")
        return self._load_path(path)

    def save_feed(self, config: FeedConfig) -> Path:
        path = self.feed_path(config.feed_name)
        payload = config.model_dump(mode="json", exclude_none=True)
        atomic_write_text(path, yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))
        return path

    def delete_feed(self, feed_name: str) -> bool:
        path = self.feed_path(feed_name)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def feed_store_dir(self, config: FeedConfig) -> Path:
        """Directory holding the payload and revision files of a feed."""

        return config.resolved_storage_dir(self.locator.store_dir)

    @staticmethod
    def _load_path(path: Path) -> FeedConfig:
        try:
            return FeedConfig.model_validate(_load_mapping(path))
        except ValidationError as exc:
            raise ValueError(f"Invalid feed configuration {path.name}: {exc}") from exc


__all__ = ["ConfigLocator", "ConfigRepository", "feedsync_home"]
