"""
Notification store: the durable queue behind generation, dispatch and retention.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session as DBSession, joinedload

from pacer.models.notification import NotificationStatus, NotificationType, ScheduledNotification
from pacer.utils.db import insert_ignore
from pacer.utils.logger import get_logger

logger = get_logger("notifications")

NOTIFICATION_KEY = ["user_id", "course_id", "scheduled_time", "notification_type"]


class NotificationStore:
    def __init__(self, db: DBSession):
        self.db = db

    def has_notification(
        self,
        user_id: int,
        course_id: str,
        scheduled_time: datetime,
        notification_type: NotificationType,
    ) -> bool:
        return (
            self.db.query(ScheduledNotification.id)
            .filter(
                ScheduledNotification.user_id == user_id,
                ScheduledNotification.course_id == course_id,
                ScheduledNotification.scheduled_time == scheduled_time,
                ScheduledNotification.notification_type == notification_type,
            )
            .first()
            is not None
        )

    def insert_many(self, rows: Iterable[dict], now: datetime) -> int:
        """
        Bulk insert pending notifications. Rows colliding on the notification
        triple are dropped by the unique constraint; returns how many landed.
        """
        staged = [
            {
                "user_id": r["user_id"],
                "course_id": r["course_id"],
                "scheduled_time": r["scheduled_time"],
                "notification_type": r["notification_type"],
                "lesson_time": r.get("lesson_time"),
                "status": NotificationStatus.PENDING,
                "retry_count": 0,
                "created_at": now,
                "updated_at": now,
            }
            for r in rows
        ]
        if not staged:
            return 0
        inserted = insert_ignore(self.db, ScheduledNotification.__table__, staged, NOTIFICATION_KEY)
        self.db.commit()
        if inserted < len(staged):
            logger.debug("notification insert contention staged=%s inserted=%s", len(staged), inserted)
        return inserted

    def find_due(self, now: datetime, limit: int) -> list[ScheduledNotification]:
        """Pending notifications due at or before `now`, oldest first."""
        return (
            self.db.query(ScheduledNotification)
            .options(joinedload(ScheduledNotification.user), joinedload(ScheduledNotification.course))
            .filter(
                ScheduledNotification.status == NotificationStatus.PENDING,
                ScheduledNotification.scheduled_time <= now,
            )
            .order_by(ScheduledNotification.scheduled_time.asc(), ScheduledNotification.id.asc())
            .limit(limit)
            .all()
        )

    def mark_sent(self, notification: ScheduledNotification, now: datetime) -> None:
        notification.status = NotificationStatus.SENT
        notification.sent_at = now
        notification.updated_at = now
        self.db.commit()

    def mark_failed(self, notification: ScheduledNotification, error: str, now: datetime) -> None:
        notification.status = NotificationStatus.FAILED
        notification.error_message = error
        notification.retry_count = (notification.retry_count or 0) + 1
        notification.updated_at = now
        self.db.commit()

    def list_for_course(
        self, course_id: str, status: Optional[NotificationStatus] = None
    ) -> list[ScheduledNotification]:
        q = self.db.query(ScheduledNotification).filter(ScheduledNotification.course_id == course_id)
        if status is not None:
            q = q.filter(ScheduledNotification.status == status)
        return q.order_by(ScheduledNotification.scheduled_time.asc()).all()

    def delete_for_course(self, course_id: str) -> int:
        deleted = (
            self.db.query(ScheduledNotification)
            .filter(ScheduledNotification.course_id == course_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(deleted or 0)

    def delete_sent_before(self, cutoff: datetime, inclusive: bool = False) -> int:
        boundary = ScheduledNotification.sent_at <= cutoff if inclusive else ScheduledNotification.sent_at < cutoff
        deleted = (
            self.db.query(ScheduledNotification)
            .filter(ScheduledNotification.status == NotificationStatus.SENT, boundary)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(deleted or 0)

    def requeue_failed(
        self,
        max_retries: int,
        course_id: Optional[str] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Operator retry: failed items under the retry cap go back to pending."""
        q = self.db.query(ScheduledNotification).filter(
            ScheduledNotification.status == NotificationStatus.FAILED,
            ScheduledNotification.retry_count < max_retries,
        )
        if course_id is not None:
            q = q.filter(ScheduledNotification.course_id == course_id)
        if user_id is not None:
            q = q.filter(ScheduledNotification.user_id == user_id)
        values = {ScheduledNotification.status: NotificationStatus.PENDING}
        if now is not None:
            values[ScheduledNotification.updated_at] = now
        updated = q.update(values, synchronize_session=False)
        self.db.commit()
        return int(updated or 0)
