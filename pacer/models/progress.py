"""
Learning progress: one row per (user, course), with keyed lesson entries and quiz results.
"""

from pacer.config import Base
from sqlalchemy import (
    Column,
    Integer,
    Float,
    String,
    JSON,
    DateTime,
    ForeignKey,
    Boolean,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum


class TeachingState(str, Enum):
    """Phase of the tutor-led session for the current lesson."""
    GREETING = "greeting"
    EXPLAINING = "explaining"
    CHECKING_UNDERSTANDING = "checking_understanding"
    ANSWERING_QUESTION = "answering_question"
    QUIZ = "quiz"
    TRANSITIONING = "transitioning"
    COMPLETED = "completed"


class LessonStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    QUIZ_PENDING = "quiz_pending"
    COMPLETED = "completed"


def empty_teaching_context() -> dict:
    return {
        "understood_concepts": [],
        "struggling_areas": [],
        "learning_preferences": [],
        "analogies_used": [],
        "last_topic_taught": None,
    }


class LearningProgress(Base):
    __tablename__ = "learning_progress"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_progress_user_course"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)

    # Current position
    current_module = Column(Integer, default=1, nullable=False)
    current_lesson = Column(String, nullable=False)
    current_subtopic = Column(Integer, default=0, nullable=False)

    # Teaching state machine; resume_state is the state answering_question returns to
    teaching_state = Column(SQLEnum(TeachingState), default=TeachingState.GREETING, nullable=False)
    resume_state = Column(SQLEnum(TeachingState), nullable=True)

    teaching_context = Column(JSON, nullable=False, default=empty_teaching_context)

    last_session_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)  # course finished for this learner
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", backref="learning_progress", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])
    lessons = relationship(
        "LessonProgress",
        backref="progress",
        cascade="all, delete-orphan",
        order_by="LessonProgress.id",
    )
    quizzes = relationship(
        "ModuleQuizResult",
        backref="progress",
        cascade="all, delete-orphan",
        order_by="ModuleQuizResult.module_number",
    )


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (
        UniqueConstraint("progress_id", "module_number", "lesson_number", name="uq_lesson_progress_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    progress_id = Column(Integer, ForeignKey("learning_progress.id"), index=True, nullable=False)
    module_number = Column(Integer, nullable=False)
    lesson_number = Column(String, nullable=False)

    subtopics = Column(JSON, nullable=False, default=list)  # list of subtopic dicts
    current_subtopic_index = Column(Integer, default=0, nullable=False)
    understanding_score = Column(Float, default=0.0, nullable=False)  # 0-100
    status = Column(SQLEnum(LessonStatus), default=LessonStatus.NOT_STARTED, nullable=False)
    questions_asked = Column(JSON, nullable=False, default=list)
    key_takeaways = Column(JSON, nullable=False, default=list)
    time_spent_seconds = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)


class ModuleQuizResult(Base):
    __tablename__ = "module_quiz_results"
    __table_args__ = (UniqueConstraint("progress_id", "module_number", name="uq_quiz_module"),)

    id = Column(Integer, primary_key=True, index=True)
    progress_id = Column(Integer, ForeignKey("learning_progress.id"), index=True, nullable=False)
    module_number = Column(Integer, nullable=False)

    score = Column(Float, nullable=False)
    passing_score = Column(Float, nullable=False)
    passed = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    questions = Column(JSON, nullable=False, default=list)
    areas_to_review = Column(JSON, nullable=False, default=list)
    completed_at = Column(DateTime, nullable=True)
