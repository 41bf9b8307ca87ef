"""Local durable storage for feed payloads and revision markers."""

from __future__ import annotations

import json
import os
import re
import tempfile
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import BinaryIO, Iterator


@dataclass(frozen=True, slots=True)
class StoredRevision:
    """Revision token committed together with the payload it describes."""

    token: str
    etag: str | None = None
    last_modified: str | None = None
    committed_at: str | None = None


@contextmanager
def atomic_writer(path: Path) -> Iterator[BinaryIO]:
    """Yield a temp file next to ``path`` and rename it into place on success.

    Any exception raised inside the block removes the temp file and leaves
    ``path`` untouched.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        mode="wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    )
    tmp_path = Path(handle.name)
    try:
        with handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, text: str) -> None:
    with atomic_writer(path) as handle:
        handle.write(text.encode("utf-8"))


def feed_slug(feed_name: str) -> str:
    """File-name stem shared by a feed's config, payload, revision and log files."""

    return re.sub(r"[^0-9a-z_]+", "-", feed_name.strip().lower()).strip("-") or "feed"


class FeedStore:
    """Keep ``<feed>.data`` and ``<feed>.rev`` side by side in one directory."""

    def __init__(self, base_dir: Path, feed_name: str) -> None:
        slug = feed_slug(feed_name)
        self.base_dir = base_dir
        self.payload_path = base_dir / f"{slug}.data"
        self.revision_path = base_dir / f"{slug}.rev"
        self.staging_path = base_dir / f"{slug}.data.part"
        self._lock = Lock()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def has_payload(self) -> bool:
        return self.payload_path.is_file()

    def promote_staging(self) -> None:
        """Move a freshly downloaded payload over the committed one."""

        with self._lock:
            os.replace(self.staging_path, self.payload_path)

    def discard_staging(self) -> None:
        self.staging_path.unlink(missing_ok=True)

    def read_revision(self) -> StoredRevision | None:
        """Return the committed revision, or None when the payload it describes is gone."""

        with self._lock:
            if not (self.revision_path.is_file() and self.payload_path.is_file()):
                return None
            text = self.revision_path.read_text(encoding="utf-8").strip()
        if not text:
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            # bare token as written by the vendor endpoint
            return StoredRevision(token=text)
        if isinstance(payload, dict) and payload.get("token"):
            return StoredRevision(
                token=str(payload["token"]),
                etag=payload.get("etag"),
                last_modified=payload.get("last_modified"),
                committed_at=payload.get("committed_at"),
            )
        return StoredRevision(token=text)

    def commit_revision(
        self,
        token: str,
        *,
        etag: str | None = None,
        last_modified: str | None = None,
    ) -> StoredRevision:
        revision = StoredRevision(
            token=token,
            etag=etag,
            last_modified=last_modified,
            committed_at=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            atomic_write_text(self.revision_path, json.dumps(asdict(revision), indent=2))
        return revision

    def reset(self) -> None:
        with self._lock:
            self.revision_path.unlink(missing_ok=True)
            self.payload_path.unlink(missing_ok=True)
            self.staging_path.unlink(missing_ok=True)


__all__ = ["FeedStore", "StoredRevision", "atomic_write_text", "atomic_writer", "feed_slug"]
