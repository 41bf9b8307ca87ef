"""Infra layer utilities (local storage)."""

from .storage import FeedStore, StoredRevision, atomic_write_text, atomic_writer, feed_slug

__all__ = ["FeedStore", "StoredRevision", "atomic_write_text", "atomic_writer", "feed_slug"]
