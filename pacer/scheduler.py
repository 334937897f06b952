"""
Periodic drivers: daily generation, per-minute dispatch, nightly retention sweep.

Every job opens its own session and is limited to one running instance, so a
slow tick never overlaps the next one.
"""

import time
from typing import Callable, Optional, TypeVar

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import OperationalError

from pacer.config import SessionLocal, Settings, get_settings
from pacer.delivery.channels import DeliveryChannel, build_channel
from pacer.services.dispatch_worker import DeliveryPool, DispatchWorker
from pacer.services.retention_sweeper import RetentionSweeper
from pacer.services.schedule_generator import ScheduleGenerator
from pacer.utils.clock import Clock, SystemClock
from pacer.utils.logger import get_logger, set_request_id, clear_request_id

logger = get_logger("scheduler")

T = TypeVar("T")


def run_with_backoff(
    fn: Callable[[], T],
    *,
    name: str,
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[T]:
    """
    Run fn, retrying on store errors with exponential backoff.
    Gives up after `attempts` tries and returns None; the next tick starts fresh.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except OperationalError as e:
            if attempt == attempts:
                logger.error("%s: store unavailable after %s attempts: %s", name, attempts, e)
                return None
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("%s: store unavailable (attempt %s/%s), retrying in %.1fs", name, attempt, attempts, delay)
            sleep(delay)
    return None


class PacerScheduler:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        channel: Optional[DeliveryChannel] = None,
        session_factory=SessionLocal,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.channel = channel or build_channel(self.settings)
        self.session_factory = session_factory
        self.pool = DeliveryPool(self.settings.delivery_workers)
        self._scheduler: Optional[BackgroundScheduler] = None

    def _run(self, name: str, work: Callable):
        """Run one job body in a fresh session, retrying store outages."""
        set_request_id(f"job-{name}")

        def attempt():
            db = self.session_factory()
            try:
                return work(db)
            finally:
                db.close()

        try:
            return run_with_backoff(attempt, name=name)
        finally:
            clear_request_id()

    def generate_job(self):
        return self._run("generate", lambda db: ScheduleGenerator(db, self.clock, self.settings).generate_daily())

    def dispatch_job(self):
        return self._run(
            "dispatch", lambda db: DispatchWorker(db, self.channel, self.clock, self.settings, self.pool).run_tick()
        )

    def sweep_job(self):
        return self._run("sweep", lambda db: RetentionSweeper(db, self.clock, self.settings).sweep())

    def build(self) -> BackgroundScheduler:
        scheduler = BackgroundScheduler(timezone="UTC")
        single = {"max_instances": 1, "coalesce": True}
        scheduler.add_job(self.generate_job, "cron", hour=0, minute=0, id="generate_daily", **single)
        scheduler.add_job(
            self.dispatch_job, "interval", seconds=self.settings.dispatch_interval_seconds, id="dispatch", **single
        )
        scheduler.add_job(self.sweep_job, "cron", hour=3, minute=0, id="retention_sweep", **single)
        return scheduler

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = self.build()
        self._scheduler.start()
        logger.info("scheduler started jobs=%s", [j.id for j in self._scheduler.get_jobs()])

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self.pool.shutdown(wait=False)
        self.pool = DeliveryPool(self.settings.delivery_workers)
        logger.info("scheduler stopped")
