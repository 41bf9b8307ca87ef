"""APScheduler wrapper exposing periodic and one-shot timers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging


class APSchedulerAdapter:
    """Manage APScheduler jobs for configured feeds."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler(timezone=timezone.utc)
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_periodic(
        self,
        job_id: str,
        callback: Callable[[], object],
        schedule: ScheduleConfig,
        *,
        run_immediately: bool = False,
    ) -> None:
        trigger = self.build_trigger(schedule)
        kwargs: dict[str, object] = {}
        if run_immediately:
            kwargs["next_run_time"] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **kwargs,
        )
        self.logger.info("job_scheduled", job=job_id, schedule=schedule.model_dump(mode="json"))

    def schedule_once(self, job_id: str, callback: Callable[[], object], delay: float) -> None:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay)
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_date),
            id=job_id,
            replace_existing=True,
            # fire late rather than never
            misfire_grace_time=None,
            coalesce=True,
        )
        self.logger.info("timer_scheduled", job=job_id, delay=delay, run_date=run_date.isoformat())

    def has_job(self, job_id: str) -> bool:
        return self.scheduler.get_job(job_id) is not None

    def remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            self.logger.debug("job_remove_missing", job=job_id)

    @staticmethod
    def build_trigger(schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value), timezone=timezone.utc)
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter"]
