"""Shared httpx client construction and URL helpers."""

from __future__ import annotations

import httpx

from ..config import GlobalConfig


def build_client(global_config: GlobalConfig | None = None, timeout: float = 30.0) -> httpx.Client:
    config = global_config or GlobalConfig()
    return httpx.Client(
        follow_redirects=True,
        timeout=timeout,
        headers=config.request_headers(),
    )


def render_url(template: str, key: str | None) -> str:
    """Substitute the credential into a URL template."""

    return template.replace("{key}", key or "")


def redact_url(url: str, key: str | None) -> str:
    """Mask the credential so URLs are safe to log."""

    if key:
        return url.replace(key, "***")
    return url


__all__ = ["build_client", "redact_url", "render_url"]
