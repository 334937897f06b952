"""
Scheduled notification queue. (user, course, scheduled_time, notification_type) is unique.
"""

from pacer.config import Base
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum


class NotificationType(str, Enum):
    REMINDER = "reminder"  # offset before the slot
    LESSON_START = "lesson_start"  # at the slot


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class ScheduledNotification(Base):
    __tablename__ = "scheduled_notifications"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "course_id", "scheduled_time", "notification_type",
            name="uq_notification_triple",
        ),
        Index("ix_notification_status_time", "status", "scheduled_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    scheduled_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    lesson_time = Column(DateTime, nullable=True)  # slot the row announces, naive UTC
    notification_type = Column(SQLEnum(NotificationType), nullable=False)
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.PENDING, nullable=False)

    sent_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])
