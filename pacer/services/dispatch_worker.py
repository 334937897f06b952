"""
Dispatch worker: sends due notifications and records each outcome.

Each item is sent with a bounded timeout and settled on its own. A failure
marks that item failed and the batch moves on. Sends run on a long-lived
DeliveryPool shared across ticks; an item is only attempted when a worker is
free, so a send that outlives its timeout holds one worker and never charges
a queued item for its hang.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.orm import Session as DBSession

from pacer.config import Settings, get_settings
from pacer.delivery.channels import DeliveryChannel
from pacer.delivery.messages import OutgoingMessage, build_notification_message
from pacer.models.notification import ScheduledNotification
from pacer.services.notification_store import NotificationStore
from pacer.utils.clock import Clock, SystemClock
from pacer.utils.common import to_storage
from pacer.utils.logger import get_logger, log_request

logger = get_logger("dispatch")


class DeliveryPool:
    """
    Fixed set of send workers. `try_submit` refuses work instead of queueing it,
    and a worker stuck in a hung send stays counted as busy until it returns.
    """

    def __init__(self, workers: int = 4):
        self.workers = workers
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pacer-send")
        self._lock = threading.Lock()
        self._busy = 0

    @property
    def busy(self) -> int:
        with self._lock:
            return self._busy

    @property
    def free(self) -> int:
        with self._lock:
            return self.workers - self._busy

    def _release(self, _future: Future) -> None:
        with self._lock:
            self._busy -= 1

    def try_submit(self, fn: Callable, *args) -> Optional[Future]:
        with self._lock:
            if self._busy >= self.workers:
                return None
            self._busy += 1
        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            with self._lock:
                self._busy -= 1
            raise
        future.add_done_callback(self._release)
        return future

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)


@lru_cache
def default_pool(workers: int = 4) -> DeliveryPool:
    return DeliveryPool(workers)


class PoolExhausted(Exception):
    """Every send worker is held by an in-flight delivery."""


@dataclass
class DispatchReport:
    due: int = 0
    sent: int = 0
    failed: int = 0
    deferred: int = 0


class DispatchWorker:
    def __init__(
        self,
        db: DBSession,
        channel: DeliveryChannel,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        pool: Optional[DeliveryPool] = None,
    ):
        self.db = db
        self.channel = channel
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        self.store = NotificationStore(db)
        self.pool = pool or default_pool(self.settings.delivery_workers)

    def _message_for(self, notification: ScheduledNotification) -> OutgoingMessage:
        user = notification.user
        course = notification.course
        if user is None or course is None:
            raise LookupError("notification references a missing user or course")
        if not user.email:
            raise LookupError(f"user {user.id} has no email address")
        return build_notification_message(
            notification_type=notification.notification_type,
            to=user.email,
            name=user.first_name,
            course_id=course.id,
            course_title=course.title,
            scheduled_time=notification.scheduled_time,
            zone_name=course.timezone or user.timezone or self.settings.default_timezone,
            reminder_minutes=user.reminder_minutes_before(self.settings.default_reminder_minutes),
            web_app_url=self.settings.web_app_url,
            lesson_time=notification.lesson_time,
        )

    def _send(self, message: OutgoingMessage) -> None:
        future = self.pool.try_submit(self.channel.send, message.to, message.subject, message.html)
        if future is None:
            raise PoolExhausted()
        try:
            future.result(timeout=self.settings.delivery_timeout_seconds)
        except FutureTimeout:
            raise TimeoutError(f"delivery exceeded {self.settings.delivery_timeout_seconds}s")

    def deliver(self, notification: ScheduledNotification) -> bool:
        """
        Send one notification and settle it. Returns True when sent.
        Raises PoolExhausted, leaving the item pending, when no worker is free.
        """
        try:
            message = self._message_for(notification)
            self._send(message)
        except PoolExhausted:
            raise
        except Exception as e:
            error = str(e) or e.__class__.__name__
            self.store.mark_failed(notification, error, to_storage(self.clock.now()))
            logger.warning(
                "notification failed id=%s type=%s error=%s",
                notification.id, notification.notification_type.value, error,
            )
            return False
        self.store.mark_sent(notification, to_storage(self.clock.now()))
        logger.info("notification sent id=%s type=%s", notification.id, notification.notification_type.value)
        return True

    def run_tick(self) -> DispatchReport:
        """Process at most one batch of due notifications."""
        report = DispatchReport()
        now = to_storage(self.clock.now())
        with log_request(logger, "dispatch tick"):
            if self.pool.free == 0:
                logger.warning("dispatch skipped: all %s send workers busy", self.pool.workers)
                return report
            due = self.store.find_due(now, self.settings.dispatch_batch_size)
            report.due = len(due)
            for index, notification in enumerate(due):
                try:
                    if self.deliver(notification):
                        report.sent += 1
                    else:
                        report.failed += 1
                except PoolExhausted:
                    report.deferred = len(due) - index
                    logger.warning("send workers exhausted; %s notifications left pending", report.deferred)
                    break
            if due:
                logger.info(
                    "dispatched due=%s sent=%s failed=%s deferred=%s",
                    report.due, report.sent, report.failed, report.deferred,
                )
        return report
