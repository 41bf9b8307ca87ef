"""Timer scheduling backed by APScheduler."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
