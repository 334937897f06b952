"""
Schedule generator: turns each course's daily study slot into pending notifications.

Generation is idempotent. Each (user, course, scheduled_time, notification_type)
is checked before staging and is also a unique key in the store, so
overlapping runs cannot double-insert.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as DBSession

from pacer.config import Settings, get_settings
from pacer.models.models import Course, CourseStatus, User
from pacer.models.notification import NotificationType
from pacer.services.notification_store import NotificationStore
from pacer.utils.clock import Clock, SystemClock
from pacer.utils.common import parse_slot_time, resolve_zone, slot_instant, to_storage
from pacer.utils.logger import get_logger, log_request

logger = get_logger("schedule")


@dataclass
class GenerationReport:
    courses_scanned: int = 0
    notifications_created: int = 0
    failed_course_ids: list[str] = field(default_factory=list)


class ScheduleGenerator:
    def __init__(self, db: DBSession, clock: Optional[Clock] = None, settings: Optional[Settings] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        self.store = NotificationStore(db)

    def _eligible(self, course: Course, user: Optional[User]) -> bool:
        if user is None or not user.wants_lesson_reminders():
            return False
        if not course.notifications_enabled or course.status == CourseStatus.COMPLETED:
            return False
        return bool(course.scheduled_start_date and course.daily_lesson_time)

    def plan_for_course(self, course: Course, user: User, days_ahead: int) -> list[dict]:
        """Stage the notifications a course still needs inside the lookahead window."""
        now = self.clock.now()
        horizon = now + timedelta(days=days_ahead)
        zone = resolve_zone(course.timezone, user.timezone, self.settings.default_timezone)
        slot = parse_slot_time(course.daily_lesson_time)
        reminder_offset = timedelta(minutes=user.reminder_minutes_before(self.settings.default_reminder_minutes))

        today = now.astimezone(zone).date()
        staged: list[dict] = []
        for offset in range(days_ahead + 1):
            day = today + timedelta(days=offset)
            if day < course.scheduled_start_date:
                continue
            if course.target_completion is not None and day > course.target_completion:
                continue
            lesson_at = slot_instant(day, slot, zone)
            if lesson_at <= now or lesson_at > horizon:
                continue

            candidates = [(lesson_at, NotificationType.LESSON_START)]
            reminder_at = lesson_at - reminder_offset
            if reminder_at > now:
                candidates.insert(0, (reminder_at, NotificationType.REMINDER))

            for instant, kind in candidates:
                stored = to_storage(instant)
                if self.store.has_notification(user.id, course.id, stored, kind):
                    continue
                staged.append(
                    {
                        "user_id": user.id,
                        "course_id": course.id,
                        "scheduled_time": stored,
                        "notification_type": kind,
                        "lesson_time": to_storage(lesson_at),
                    }
                )
        return staged

    def generate_for_course(self, course: Course, user: Optional[User] = None, days_ahead: Optional[int] = None) -> int:
        """Generate notifications for one course. Returns how many were inserted."""
        user = user or course.user
        if not self._eligible(course, user):
            return 0
        days = days_ahead if days_ahead is not None else self.settings.lookahead_days
        staged = self.plan_for_course(course, user, days)
        inserted = self.store.insert_many(staged, to_storage(self.clock.now()))
        if inserted:
            logger.info("generated notifications course_id=%s user_id=%s count=%s", course.id, user.id, inserted)
        return inserted

    def active_courses(self) -> list[Course]:
        return (
            self.db.query(Course)
            .filter(
                Course.notifications_enabled.is_(True),
                Course.scheduled_start_date.isnot(None),
                Course.daily_lesson_time.isnot(None),
                Course.status != CourseStatus.COMPLETED,
            )
            .order_by(Course.created_at.asc())
            .all()
        )

    def generate_daily(self, days_ahead: Optional[int] = None) -> GenerationReport:
        """Scan every active course. One bad course never stops the rest."""
        report = GenerationReport()
        with log_request(logger, "daily notification generation"):
            for course in self.active_courses():
                report.courses_scanned += 1
                course_id = course.id
                try:
                    report.notifications_created += self.generate_for_course(course, days_ahead=days_ahead)
                except OperationalError:
                    # Store unreachable: let the driver retry the whole run.
                    raise
                except Exception:
                    self.db.rollback()
                    report.failed_course_ids.append(course_id)
                    logger.exception("notification generation failed course_id=%s", course_id)
            logger.info(
                "generated %s notifications across %s courses (failed=%s)",
                report.notifications_created, report.courses_scanned, len(report.failed_course_ids),
            )
        return report
