"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
import threading
from datetime import date, datetime, timezone
from pathlib import Path

# Settings are read once at import; point them at throwaway resources first.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AGENT_API_KEY", "test-agent-key")
os.environ.setdefault("LOG_DIR", str(Path(__file__).parent / ".logs"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine shared across threads and sessions."""
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def session_factory(in_memory_engine):
    from pacer.config import Base
    import pacer.models  # noqa: F401
    Base.metadata.create_all(in_memory_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)


@pytest.fixture
def db_session(session_factory):
    """Create an in-memory database session with the pacer schema."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Monday 2025-03-10 06:00 UTC."""
    from pacer.utils.clock import FrozenClock
    return FrozenClock(datetime(2025, 3, 10, 6, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_settings():
    from pacer.config import Settings
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        default_timezone="UTC",
        lookahead_days=1,
        default_reminder_minutes=30,
        dispatch_batch_size=100,
        delivery_timeout_seconds=0.5,
        retention_days=7,
        max_retries=3,
        web_app_url="https://app.example.com",
    )


@pytest.fixture
def test_user(db_session):
    """Create a test learner in the DB."""
    from pacer.models.models import User
    user = User(
        email="learner@example.com",
        first_name="Ada",
        timezone="UTC",
        notification_preferences={"lesson_reminders": True, "reminder_minutes_before": 30},
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def course_factory(db_session):
    """
    Build a course with a module/lesson tree, e.g.
        course_factory(user, [(1, ["1.1", "1.2"]), (2, ["2.1"])])
    """
    from pacer.models.models import Course, Lesson, Module

    def _make(user, modules=((1, ["1.1", "1.2"]), (2, ["2.1"])), course_id="c1", **fields):
        values = {
            "title": "Machine Learning Fundamentals",
            "daily_lesson_time": "09:00",
            "timezone": None,
            "scheduled_start_date": date(2025, 3, 1),
            "notifications_enabled": True,
        }
        values.update(fields)
        course = Course(id=course_id, user_id=user.id, **values)
        for module_number, lesson_numbers in modules:
            module = Module(
                id=f"{course_id}-m{module_number}",
                module_number=module_number,
                title=f"Module {module_number}",
            )
            for position, lesson_number in enumerate(lesson_numbers):
                module.lessons.append(
                    Lesson(
                        id=f"{course_id}-m{module_number}-l{position}",
                        lesson_number=lesson_number,
                        position=position,
                        title=f"Lesson {lesson_number}",
                    )
                )
            course.modules.append(module)
        db_session.add(course)
        db_session.commit()
        db_session.refresh(course)
        return course

    return _make


@pytest.fixture
def test_course(test_user, course_factory):
    """Two modules: [1.1, 1.2] and [2.1]."""
    return course_factory(test_user)


class RecordingChannel:
    """Delivery channel double: records sends, fails chosen calls, can block."""

    def __init__(self, fail_on=(), block: threading.Event | None = None, hang_on=()):
        self.sent: list[tuple[str, str, str]] = []
        self.calls = 0
        self.fail_on = set(fail_on)
        self.block = block
        self.hang_on = set(hang_on)
        self._lock = threading.Lock()

    def send(self, to: str, subject: str, html: str) -> None:
        from pacer.errors import TransientDeliveryFailure
        with self._lock:
            self.calls += 1
            call = self.calls
        if self.block is not None and (not self.hang_on or call in self.hang_on):
            self.block.wait(timeout=5)
        if call in self.fail_on:
            raise TransientDeliveryFailure(f"channel rejected call {call}")
        self.sent.append((to, subject, html))


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def channel_factory():
    return RecordingChannel
