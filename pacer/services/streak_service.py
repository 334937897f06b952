"""
Consecutive-day completion streak, compared by calendar day in the learner's zone.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from pacer.config import Settings, get_settings
from pacer.models.models import User
from pacer.utils.clock import Clock
from pacer.utils.common import local_date, resolve_zone
from pacer.utils.logger import get_logger

logger = get_logger("streak")


@dataclass
class StreakView:
    current_streak: int
    longest_streak: int
    last_streak_update: Optional[date]


class StreakService:
    def __init__(self, clock: Clock, settings: Optional[Settings] = None):
        self.clock = clock
        self.settings = settings or get_settings()

    def today_for(self, user: User) -> date:
        zone = resolve_zone(user.timezone, self.settings.default_timezone)
        return local_date(self.clock.now(), zone)

    def record_completion(self, user: User) -> bool:
        """
        Apply one lesson completion to the user's streak. Returns True if the
        streak changed. Does not commit.
        """
        today = self.today_for(user)
        last = user.last_streak_update

        if last == today:
            return False

        if last is not None and today - last == timedelta(days=1):
            user.current_streak = (user.current_streak or 0) + 1
        else:
            # No prior record, a skipped day, or a last update "in the future"
            # after a zone change: start over.
            user.current_streak = 1

        user.longest_streak = max(user.longest_streak or 0, user.current_streak)
        user.last_streak_update = today
        logger.info(
            "streak updated user_id=%s current=%s longest=%s day=%s",
            user.id, user.current_streak, user.longest_streak, today,
        )
        return True

    def view(self, user: User) -> StreakView:
        """Streak as displayed: a streak whose last day is before yesterday reads as 0."""
        current = user.current_streak or 0
        last = user.last_streak_update
        if last is None or self.today_for(user) - last > timedelta(days=1):
            current = 0
        return StreakView(current_streak=current, longest_streak=user.longest_streak or 0, last_streak_update=last)
