"""Streaming payload download with atomic replacement."""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog

from ..exceptions import DownloadError, TransientNetworkError
from ..infra.storage import atomic_writer
from .http import redact_url, render_url


class FeedDownloader:
    """Fetch the full feed; the destination only changes after a complete 200."""

    def __init__(
        self,
        client: httpx.Client,
        url_template: str,
        key: str | None,
        *,
        timeout: float = 300.0,
        max_bytes: int | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.url_template = url_template
        self.key = key
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.logger = logger or structlog.get_logger("feedsync.downloader")

    @property
    def url(self) -> str:
        return render_url(self.url_template, self.key)

    def download(self, destination: Path) -> int:
        """Stream the payload into ``destination`` and return the byte count."""

        safe_url = redact_url(self.url, self.key)
        self.logger.info("download_started", url=safe_url)
        written = 0
        try:
            with self.client.stream("GET", self.url, timeout=self.timeout) as response:
                if response.status_code != 200:
                    raise DownloadError(
                        f"Unexpected status {response.status_code} for payload",
                        retryable=True,
                        status_code=response.status_code,
                    )
                with atomic_writer(destination) as handle:
                    for chunk in response.iter_bytes():
                        written += len(chunk)
                        if self.max_bytes is not None and written > self.max_bytes:
                            raise DownloadError(
                                f"Payload exceeds {self.max_bytes} bytes",
                                retryable=True,
                                status_code=response.status_code,
                            )
                        handle.write(chunk)
        except httpx.TransportError as exc:
            raise TransientNetworkError(
                f"Payload request failed: {type(exc).__name__}", url=safe_url
            ) from exc
        except httpx.HTTPError as exc:
            raise DownloadError(f"Malformed payload response: {exc}", retryable=True) from exc

        self.logger.info("download_complete", url=safe_url, bytes=written)
        return written


__all__ = ["FeedDownloader"]
