"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, feedsync_home
from .models import DEFAULT_FIELDS, FeedConfig, GlobalConfig, ScheduleConfig, ScheduleType

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_FIELDS",
    "FeedConfig",
    "GlobalConfig",
    "ScheduleConfig",
    "ScheduleType",
    "feedsync_home",
]
