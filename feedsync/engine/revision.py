"""Conditional fetch of the remote revision marker."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from ..exceptions import PermanentConfigError, TransientNetworkError
from ..infra.storage import StoredRevision
from .http import redact_url, render_url


@dataclass(frozen=True, slots=True)
class RevisionCheck:
    """Outcome of one revision request."""

    token: str
    unchanged: bool
    status_code: int
    etag: str | None = None
    last_modified: str | None = None


class RevisionFetcher:
    """Ask the provider for its current revision without pulling the payload."""

    def __init__(
        self,
        client: httpx.Client,
        url_template: str,
        key: str | None,
        *,
        requires_key: bool = True,
        timeout: float = 30.0,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.url_template = url_template
        self.key = key
        self.requires_key = requires_key
        self.timeout = timeout
        self.logger = logger or structlog.get_logger("feedsync.revision")

    @property
    def url(self) -> str:
        return render_url(self.url_template, self.key)

    def check_config(self) -> None:
        """Raise PermanentConfigError when the credential is missing."""

        if self.requires_key and not self.key:
            raise PermanentConfigError("No export key defined")

    def fetch_revision(self, known: StoredRevision | None = None) -> RevisionCheck:
        self.check_config()

        safe_url = redact_url(self.url, self.key)
        headers: dict[str, str] = {}
        if known is not None:
            if known.etag:
                headers["If-None-Match"] = known.etag
            if known.last_modified:
                headers["If-Modified-Since"] = known.last_modified

        try:
            response = self.client.get(self.url, headers=headers, timeout=self.timeout)
        except httpx.TransportError as exc:
            raise TransientNetworkError(
                f"Revision request failed: {type(exc).__name__}", url=safe_url
            ) from exc

        if response.status_code == 304:
            if known is None:
                # validators were sent without a local revision; treat as a protocol error
                raise TransientNetworkError(
                    "Not modified without a known revision", url=safe_url, status_code=304
                )
            self.logger.debug("revision_not_modified", url=safe_url, token=known.token)
            return RevisionCheck(
                token=known.token,
                unchanged=True,
                status_code=304,
                etag=known.etag,
                last_modified=known.last_modified,
            )

        if response.status_code != 200:
            raise TransientNetworkError(
                f"Unexpected status {response.status_code} for revision",
                url=safe_url,
                status_code=response.status_code,
            )

        token = response.text.strip()
        if not token:
            raise TransientNetworkError("Empty revision marker", url=safe_url, status_code=200)
        unchanged = known is not None and token == known.token
        self.logger.debug(
            "revision_fetched",
            url=safe_url,
            token=token,
            previous=known.token if known else None,
            unchanged=unchanged,
        )
        return RevisionCheck(
            token=token,
            unchanged=unchanged,
            status_code=200,
            etag=response.headers.get("ETag"),
            last_modified=response.headers.get("Last-Modified"),
        )


__all__ = ["RevisionCheck", "RevisionFetcher"]
