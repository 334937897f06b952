from pacer.config import Base
from sqlalchemy import Column, Integer, String, JSON, Date, DateTime, ForeignKey, Boolean, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum


class CourseStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ItemStatus(str, Enum):
    """Catalog completion status for modules and lessons."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    timezone = Column(String, nullable=True)  # IANA name, e.g. "Africa/Lagos"
    notification_preferences = Column(JSON, nullable=True)  # lesson_reminders, reminder_minutes_before

    # Streak (mutated on lesson completion)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_streak_update = Column(Date, nullable=True)  # local calendar day of the last counted completion

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def reminder_minutes_before(self, default: int = 30) -> int:
        prefs = self.notification_preferences or {}
        value = prefs.get("reminder_minutes_before") if isinstance(prefs, dict) else None
        return int(value) if isinstance(value, (int, float)) and value >= 0 else default

    def wants_lesson_reminders(self) -> bool:
        prefs = self.notification_preferences or {}
        if not isinstance(prefs, dict):
            return True
        return bool(prefs.get("lesson_reminders", True))


class Course(Base):
    __tablename__ = "courses"
    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    status = Column(SQLEnum(CourseStatus), default=CourseStatus.ACTIVE, nullable=False, index=True)

    # Daily study slot
    daily_lesson_time = Column(String, nullable=True)  # local "HH:MM"
    timezone = Column(String, nullable=True)
    scheduled_start_date = Column(Date, nullable=True)
    target_completion = Column(Date, nullable=True)
    notifications_enabled = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", backref="courses", foreign_keys=[user_id])
    modules = relationship(
        "Module",
        backref="course",
        cascade="all, delete-orphan",
        order_by="Module.module_number",
    )


class Module(Base):
    __tablename__ = "modules"
    __table_args__ = (UniqueConstraint("course_id", "module_number", name="uq_module_number"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    module_number = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    status = Column(SQLEnum(ItemStatus), default=ItemStatus.PENDING, nullable=False)

    lessons = relationship(
        "Lesson",
        backref="module",
        cascade="all, delete-orphan",
        order_by="Lesson.position",
    )


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (UniqueConstraint("module_id", "lesson_number", name="uq_lesson_number"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    module_id = Column(String, ForeignKey("modules.id"), index=True, nullable=False)
    lesson_number = Column(String, nullable=False)  # opaque, e.g. "1.2"; never parsed
    position = Column(Integer, nullable=False)  # array order within the module
    title = Column(String, nullable=False)
    status = Column(SQLEnum(ItemStatus), default=ItemStatus.PENDING, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
