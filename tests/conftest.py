"""Pytest configuration providing shared fixtures."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

# logs of the whole session land in a throwaway home
os.environ.setdefault("FEEDSYNC_HOME", tempfile.mkdtemp(prefix="feedsync-tests-"))

from feedsync.config import ConfigLocator, ConfigRepository, FeedConfig, ScheduleConfig  # noqa: E402
from feedsync.logging_conf import configure_logging  # noqa: E402

configure_logging()

REVISION_URL = "https://feeds.example.com/{key}/reputation.rev"
DATA_URL = "https://feeds.example.com/{key}/reputation.data"


def feed_row(ip: str, reliability: str = "4", threat: str = "2", activity: str = "Scanning Host", ident: str = "11") -> str:
    """One well-formed 8 column row in the vendor layout."""

    return "#".join([ip, reliability, threat, activity, "US", "Dallas", "32.7,-96.8", ident])


class StubTimer:
    """Timer double recording every call instead of scheduling anything."""

    def __init__(self) -> None:
        self.periodic: list[dict[str, Any]] = []
        self.once: list[dict[str, Any]] = []
        self.removed: list[str] = []
        self.started = 0

    def schedule_periodic(self, job_id, callback, schedule, *, run_immediately=False) -> None:  # noqa: ANN001
        self.periodic.append(
            {"id": job_id, "callback": callback, "schedule": schedule, "immediate": run_immediately}
        )

    def schedule_once(self, job_id, callback, delay) -> None:  # noqa: ANN001
        self.once.append({"id": job_id, "callback": callback, "delay": delay})

    def remove_job(self, job_id) -> None:  # noqa: ANN001
        self.removed.append(job_id)

    def start(self) -> None:
        self.started += 1

    def shutdown(self) -> None:
        return


class FakeFeedServer:
    """Scriptable httpx handler serving a revision marker and a payload."""

    def __init__(self, revision: str = "1001", payload: str | bytes = "") -> None:
        self.revision = revision
        self.payload = payload
        self.revision_status = 200
        self.data_status = 200
        self.etag: str | None = None
        self.revision_error: Exception | None = None
        self.data_error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def count(self, suffix: str) -> int:
        return sum(1 for request in self.requests if request.url.path.endswith(suffix))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith(".rev"):
            if self.revision_error is not None:
                raise self.revision_error
            if self.etag and request.headers.get("If-None-Match") == self.etag:
                return httpx.Response(304)
            headers = {"ETag": self.etag} if self.etag else {}
            return httpx.Response(self.revision_status, text=self.revision, headers=headers)
        if self.data_error is not None:
            raise self.data_error
        content = self.payload if isinstance(self.payload, bytes) else self.payload.encode("utf-8")
        return httpx.Response(self.data_status, content=content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture
def make_row() -> Callable[..., str]:
    return feed_row


@pytest.fixture
def stub_timer() -> StubTimer:
    return StubTimer()


@pytest.fixture
def feed_server() -> FakeFeedServer:
    payload = "\n".join([feed_row("1.2.3.4"), feed_row("5.6.7.8", ident="12")]) + "\n"
    return FakeFeedServer(revision="1001", payload=payload)


@pytest.fixture
def sample_feed_config() -> Callable[..., FeedConfig]:
    def _builder(**overrides: Any) -> FeedConfig:
        base: dict[str, Any] = {
            "feed_name": "alienvault",
            "api_key": "secret-key",
            "revision_url": REVISION_URL,
            "data_url": DATA_URL,
            "schedule": ScheduleConfig(value=7200),
            "retry_delay": 300,
        }
        base.update(overrides)
        return FeedConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path))
    locator = ConfigLocator(tmp_path)
    repository = ConfigRepository(locator)
    yield repository
