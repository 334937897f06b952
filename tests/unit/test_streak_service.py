"""Unit tests for the consecutive-day streak."""
from datetime import date, datetime, timezone

import pytest

from pacer.services.streak_service import StreakService
from pacer.utils.clock import FrozenClock


@pytest.fixture
def streaks(clock, test_settings):
    return StreakService(clock, test_settings)


@pytest.mark.unit
class TestRecordCompletion:
    def test_first_completion_starts_at_one(self, streaks, test_user):
        assert streaks.record_completion(test_user) is True
        assert test_user.current_streak == 1
        assert test_user.longest_streak == 1
        assert test_user.last_streak_update == date(2025, 3, 10)

    def test_same_day_is_noop(self, streaks, test_user):
        streaks.record_completion(test_user)
        assert streaks.record_completion(test_user) is False
        assert test_user.current_streak == 1

    def test_next_day_increments(self, streaks, clock, test_user):
        streaks.record_completion(test_user)
        clock.advance(days=1)
        streaks.record_completion(test_user)
        assert test_user.current_streak == 2
        assert test_user.longest_streak == 2

    def test_gap_resets_but_keeps_longest(self, streaks, clock, test_user):
        for _ in range(3):
            streaks.record_completion(test_user)
            clock.advance(days=1)
        clock.advance(days=1)  # skip a day
        streaks.record_completion(test_user)
        assert test_user.current_streak == 1
        assert test_user.longest_streak == 3

    def test_day_is_judged_in_learner_zone(self, test_settings, test_user):
        test_user.timezone = "Asia/Tokyo"
        # 2025-03-10 14:00 UTC is 23:00 in Tokyo; 16:00 UTC is already the 11th there
        clock = FrozenClock(datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc))
        streaks = StreakService(clock, test_settings)
        streaks.record_completion(test_user)
        clock.advance(hours=2)
        streaks.record_completion(test_user)
        assert test_user.current_streak == 2
        assert test_user.last_streak_update == date(2025, 3, 11)

    def test_does_not_commit(self, streaks, db_session, test_user):
        streaks.record_completion(test_user)
        db_session.rollback()
        db_session.refresh(test_user)
        assert test_user.current_streak == 0


@pytest.mark.unit
class TestStreakView:
    def test_fresh_streak_is_displayed(self, streaks, clock, test_user):
        streaks.record_completion(test_user)
        clock.advance(days=1)
        view = streaks.view(test_user)
        assert view.current_streak == 1

    def test_stale_streak_reads_zero_without_mutation(self, streaks, clock, test_user):
        streaks.record_completion(test_user)
        clock.advance(days=2)
        view = streaks.view(test_user)
        assert view.current_streak == 0
        assert view.longest_streak == 1
        assert test_user.current_streak == 1
