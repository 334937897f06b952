"""Unit tests for the notification store and retention sweep."""
from datetime import datetime, timedelta

import pytest

from pacer.errors import StoreContention
from pacer.models.notification import NotificationStatus, NotificationType, ScheduledNotification
from pacer.services.retention_sweeper import RetentionSweeper
from pacer.utils.db import insert_row

NOW = datetime(2025, 3, 10, 6, 0)


@pytest.fixture
def add_notification(db_session, test_user, test_course):
    def _add(scheduled_time, status=NotificationStatus.PENDING, kind=NotificationType.LESSON_START, **fields):
        n = ScheduledNotification(
            user_id=test_user.id,
            course_id=test_course.id,
            scheduled_time=scheduled_time,
            notification_type=kind,
            status=status,
            **fields,
        )
        db_session.add(n)
        db_session.commit()
        return n

    return _add


@pytest.mark.unit
class TestInsertMany:
    def test_duplicates_are_dropped(self, store, test_user, test_course):
        row = {
            "user_id": test_user.id,
            "course_id": test_course.id,
            "scheduled_time": datetime(2025, 3, 10, 9, 0),
            "notification_type": NotificationType.LESSON_START,
        }
        assert store.insert_many([row], NOW) == 1
        assert store.insert_many([row, dict(row, notification_type=NotificationType.REMINDER)], NOW) == 1
        assert store.has_notification(test_user.id, test_course.id, row["scheduled_time"], NotificationType.REMINDER)

    def test_empty(self, store):
        assert store.insert_many([], NOW) == 0

    def test_single_row_collision_raises_contention(self, db_session, test_user, test_course):
        row = {
            "user_id": test_user.id,
            "course_id": test_course.id,
            "scheduled_time": datetime(2025, 3, 10, 9, 0),
            "notification_type": NotificationType.LESSON_START,
            "status": NotificationStatus.PENDING,
            "retry_count": 0,
            "created_at": NOW,
            "updated_at": NOW,
        }
        insert_row(db_session, ScheduledNotification.__table__, row)
        with pytest.raises(StoreContention):
            insert_row(db_session, ScheduledNotification.__table__, row)
        db_session.commit()
        assert db_session.query(ScheduledNotification).count() == 1


@pytest.mark.unit
class TestFindDue:
    def test_oldest_first_and_never_early(self, store, add_notification):
        late = add_notification(NOW - timedelta(minutes=1))
        early = add_notification(NOW - timedelta(hours=2))
        add_notification(NOW + timedelta(minutes=1))
        add_notification(NOW - timedelta(hours=3), status=NotificationStatus.SENT)
        assert [n.id for n in store.find_due(NOW, 10)] == [early.id, late.id]

    def test_due_at_exactly_now(self, store, add_notification):
        n = add_notification(NOW)
        assert [d.id for d in store.find_due(NOW, 10)] == [n.id]

    def test_limit(self, store, add_notification):
        for minutes in range(5):
            add_notification(NOW - timedelta(minutes=minutes + 1))
        assert len(store.find_due(NOW, 3)) == 3


@pytest.mark.unit
class TestRequeue:
    def test_only_under_retry_cap(self, store, add_notification, db_session):
        retryable = add_notification(NOW - timedelta(hours=1), status=NotificationStatus.FAILED, retry_count=1)
        exhausted = add_notification(NOW - timedelta(hours=2), status=NotificationStatus.FAILED, retry_count=3)
        assert store.requeue_failed(3, now=NOW) == 1
        db_session.expire_all()
        assert retryable.status == NotificationStatus.PENDING
        assert exhausted.status == NotificationStatus.FAILED

    def test_scoped_to_course(self, store, add_notification):
        add_notification(NOW, status=NotificationStatus.FAILED, retry_count=0)
        assert store.requeue_failed(3, course_id="other") == 0


@pytest.mark.unit
class TestCourseScoped:
    def test_list_and_delete(self, store, add_notification):
        add_notification(NOW)
        add_notification(NOW, status=NotificationStatus.SENT, kind=NotificationType.REMINDER)
        assert len(store.list_for_course("c1")) == 2
        assert len(store.list_for_course("c1", NotificationStatus.SENT)) == 1
        assert store.delete_for_course("c1") == 2
        assert store.list_for_course("c1") == []


@pytest.mark.unit
class TestRetentionSweep:
    def _sent(self, add_notification, sent_at, minutes):
        return add_notification(
            NOW - timedelta(days=30, minutes=minutes), status=NotificationStatus.SENT, sent_at=sent_at
        )

    def test_deletes_only_old_sent_items(self, db_session, clock, test_settings, add_notification):
        cutoff = NOW - timedelta(days=7)
        self._sent(add_notification, cutoff - timedelta(seconds=1), 1)
        kept = self._sent(add_notification, cutoff + timedelta(seconds=1), 2)
        pending = add_notification(NOW - timedelta(days=30))
        failed = add_notification(NOW - timedelta(days=29), status=NotificationStatus.FAILED)

        assert RetentionSweeper(db_session, clock, test_settings).sweep() == 1
        remaining = {n.id for n in db_session.query(ScheduledNotification)}
        assert remaining == {kept.id, pending.id, failed.id}

    def test_boundary_is_exclusive_by_default(self, db_session, clock, test_settings, add_notification):
        self._sent(add_notification, NOW - timedelta(days=7), 1)
        assert RetentionSweeper(db_session, clock, test_settings).sweep() == 0

    def test_inclusive_boundary(self, db_session, clock, test_settings, add_notification):
        self._sent(add_notification, NOW - timedelta(days=7), 1)
        settings = test_settings.model_copy(update={"retention_inclusive": True})
        assert RetentionSweeper(db_session, clock, settings).sweep() == 1
