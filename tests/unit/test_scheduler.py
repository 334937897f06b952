"""Unit tests for the periodic drivers. Jobs are invoked directly; no scheduler thread runs."""
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from pacer.models.notification import NotificationStatus, NotificationType, ScheduledNotification
from pacer.scheduler import PacerScheduler, run_with_backoff


def _store_down():
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


@pytest.mark.unit
class TestRunWithBackoff:
    def test_retries_then_succeeds(self):
        calls, delays = [], []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _store_down()
            return "ok"

        assert run_with_backoff(flaky, name="t", attempts=3, base_delay=1.0, sleep=delays.append) == "ok"
        assert delays == [1.0, 2.0]

    def test_gives_up(self):
        delays = []

        def down():
            raise _store_down()

        assert run_with_backoff(down, name="t", attempts=3, sleep=delays.append) is None
        assert len(delays) == 2

    def test_other_errors_propagate(self):
        def broken():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            run_with_backoff(broken, name="t", sleep=lambda _: None)


@pytest.mark.unit
class TestPacerScheduler:
    @pytest.fixture
    def scheduler(self, session_factory, clock, test_settings, channel):
        return PacerScheduler(settings=test_settings, clock=clock, channel=channel, session_factory=session_factory)

    def test_jobs_registered(self, scheduler):
        jobs = {job.id: job for job in scheduler.build().get_jobs()}
        assert set(jobs) == {"generate_daily", "dispatch", "retention_sweep"}
        assert jobs["dispatch"].max_instances == 1
        assert jobs["dispatch"].coalesce is True

    def test_generate_then_dispatch(self, scheduler, clock, channel, db_session, test_course):
        report = scheduler.generate_job()
        assert report.notifications_created == 2
        clock.advance(hours=3)  # past the 09:00 slot
        tick = scheduler.dispatch_job()
        assert tick.sent == 2
        assert len(channel.sent) == 2

    def test_sweep_job(self, scheduler, db_session, test_course, test_user):
        db_session.add(
            ScheduledNotification(
                user_id=test_user.id,
                course_id=test_course.id,
                scheduled_time=datetime(2025, 2, 1, 9, 0),
                notification_type=NotificationType.LESSON_START,
                status=NotificationStatus.SENT,
                sent_at=datetime(2025, 2, 1, 9, 0),
            )
        )
        db_session.commit()
        assert scheduler.sweep_job() == 1
