from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from services.pipeline import HaikuPipeline

logger = logging.getLogger(__name__)

JOB_ID = "haiku_cycle"


class HaikuScheduler:
    """Runs the pipeline at start-up and then once per interval.

    The job is single-flight: a tick that fires while a cycle is still
    running is skipped rather than started in parallel.
    """

    def __init__(
        self,
        pipeline: HaikuPipeline,
        interval_seconds: float = 3600.0,
        scheduler: Optional[BaseScheduler] = None,
    ) -> None:
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def job(self) -> Optional[Job]:
        return self._scheduler.get_job(JOB_ID)

    def start(self) -> None:
        if self._scheduler.running:
            return
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Haiku scheduler started; first cycle now, then every %gs",
            self.interval_seconds,
            extra={"sensor_mode": self.pipeline.reader.mode},
        )

    def shutdown(self) -> None:
        if not self._scheduler.running:
            return
        # In-flight cycles are left to finish on their own; their timeouts bound them.
        self._scheduler.shutdown(wait=False)
        logger.info("Haiku scheduler stopped")

    def _tick(self) -> None:
        logger.info("Starting haiku cycle")
        try:
            self.pipeline.run_cycle()
        except Exception:
            logger.exception("Unexpected failure in haiku cycle", extra={"stage": "cycle"})
