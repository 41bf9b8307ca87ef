"""Exception hierarchy for feed synchronisation."""

from __future__ import annotations


class FeedSyncError(Exception):
    """Base exception for all feedsync errors."""


class PermanentConfigError(FeedSyncError):
    """Configuration is unusable (e.g. missing credential); never retried."""


class TransientNetworkError(FeedSyncError):
    """Timeout, connection failure or unexpected status; retried later."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class DownloadError(FeedSyncError):
    """Full payload download did not complete."""

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = True,
        status_code: int | None = None,
    ) -> None:
        self.retryable = retryable
        self.status_code = status_code
        super().__init__(message)


class ParseError(FeedSyncError):
    """Payload could not be read as delimiter separated rows."""


__all__ = [
    "DownloadError",
    "FeedSyncError",
    "ParseError",
    "PermanentConfigError",
    "TransientNetworkError",
]
