"""Engine components: revision check → download → parse."""

from .downloader import FeedDownloader
from .encoder import FieldMapEncoder, RecordEncoder
from .http import build_client, redact_url, render_url
from .parser import FeedParser, ParseResult
from .revision import RevisionCheck, RevisionFetcher

__all__ = [
    "FeedDownloader",
    "FeedParser",
    "FieldMapEncoder",
    "ParseResult",
    "RecordEncoder",
    "RevisionCheck",
    "RevisionFetcher",
    "build_client",
    "redact_url",
    "render_url",
]
