"""structlog logging for feedsync.

structlog events are forwarded to stdlib logging and rendered as JSON by
python-json-logger. Everything goes to the console, ``feedsync.log`` and
``error.log``; events bound to a feed are also copied into
``logs/feeds/<slug>.log`` so one feed's sync history can be read on its own.
"""

from __future__ import annotations

import logging
import logging.config
from collections import deque
from pathlib import Path

import structlog

from .config.loader import feedsync_home
from .infra.storage import feed_slug

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    return feedsync_home() / "logs"


def feed_log_path(feed_name: str, log_dir: Path | None = None) -> Path:
    return (log_dir or default_log_dir()) / "feeds" / f"{feed_slug(feed_name)}.log"


class FeedLogRouter(logging.Handler):
    """Copy records whose event carries ``feed`` into that feed's own file."""

    def __init__(self, log_dir: str, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.log_dir = Path(log_dir)
        self._files: dict[str, logging.FileHandler] = {}

    def emit(self, record: logging.LogRecord) -> None:
        event = record.msg if isinstance(record.msg, dict) else {}
        feed = event.get("feed")
        if not feed:
            return
        target = self._files.get(feed)
        if target is None:
            path = feed_log_path(feed, self.log_dir)
            path.parent.mkdir(parents=True, exist_ok=True)
            target = logging.FileHandler(path, encoding="utf-8")
            target.setFormatter(self.formatter)
            self._files[feed] = target
        target.handle(record)

    def close(self) -> None:
        for target in self._files.values():
            target.close()
        self._files.clear()
        super().close()


def _dict_config(log_dir: Path, level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "main_file": {
                "class": "logging.FileHandler",
                "level": "INFO",
                "filename": str(log_dir / "feedsync.log"),
                "encoding": "utf-8",
                "formatter": "json",
            },
            "error_file": {
                "class": "logging.FileHandler",
                "level": "ERROR",
                "filename": str(log_dir / "error.log"),
                "encoding": "utf-8",
                "formatter": "json",
            },
            "feed_files": {
                "()": FeedLogRouter,
                "log_dir": str(log_dir),
                "level": "INFO",
                "formatter": "json",
            },
        },
        "loggers": {
            "feedsync": {
                "handlers": ["console", "main_file", "error_file", "feed_files"],
                "level": level,
                "propagate": False,
            },
            # job misses and executor errors end up next to the sync events
            "apscheduler": {
                "handlers": ["main_file", "error_file"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers once per process and return the ``feedsync`` logger.

    Later calls with ``verbose=True`` only lower the level to DEBUG.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = default_log_dir()
        (log_dir / "feeds").mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(_dict_config(log_dir, "DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    elif verbose:
        root = logging.getLogger("feedsync")
        root.setLevel(logging.DEBUG)
        for handler in root.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setLevel(logging.DEBUG)
    return structlog.get_logger("feedsync")


def feed_logger(feed_name: str, **context: object) -> structlog.BoundLogger:
    """Logger for one feed's sync events; ``feed`` routes them to its own file."""

    configure_logging()
    return structlog.get_logger("feedsync.sync").bind(feed=feed_name, **context)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.is_file():
        return []
    with path.open("r", encoding="utf-8", errors="replace") as stream:
        return list(deque(stream, maxlen=line_count))


def available_feed_logs() -> list[Path]:
    feeds_dir = default_log_dir() / "feeds"
    if not feeds_dir.is_dir():
        return []
    return sorted(feeds_dir.glob("*.log"))


__all__ = [
    "FeedLogRouter",
    "available_feed_logs",
    "configure_logging",
    "default_log_dir",
    "feed_log_path",
    "feed_logger",
    "tail_log",
]
