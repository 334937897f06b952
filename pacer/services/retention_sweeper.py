"""Retention sweeper: removes sent notifications older than the retention window."""

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from pacer.config import Settings, get_settings
from pacer.services.notification_store import NotificationStore
from pacer.utils.clock import Clock, SystemClock
from pacer.utils.common import to_storage
from pacer.utils.logger import get_logger

logger = get_logger("retention")


class RetentionSweeper:
    def __init__(self, db: DBSession, clock: Optional[Clock] = None, settings: Optional[Settings] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        self.store = NotificationStore(db)

    def cutoff(self):
        return to_storage(self.clock.now() - timedelta(days=self.settings.retention_days))

    def sweep(self) -> int:
        """Delete sent items whose sent_at falls before the cutoff. Pending and failed rows are kept."""
        cutoff = self.cutoff()
        deleted = self.store.delete_sent_before(cutoff, inclusive=self.settings.retention_inclusive)
        logger.info("retention sweep cutoff=%s deleted=%s", cutoff.isoformat(), deleted)
        return deleted
