"""
Progression engine: learner position, teaching state, lesson entries, quiz results.

All mutations for one (user, course) run under a per-key lock and, on backends
that support it, a row lock on the progress record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session as DBSession

from pacer.config import Settings, get_settings
from pacer.errors import InvalidTransition, NotFound
from pacer.models.models import Course, User
from pacer.models.progress import (
    LearningProgress,
    LessonProgress,
    LessonStatus,
    ModuleQuizResult,
    TeachingState,
    empty_teaching_context,
)
from pacer.services.catalog_service import CatalogAccessor
from pacer.services.streak_service import StreakService
from pacer.utils.clock import Clock, SystemClock
from pacer.utils.common import RoomKey, iso_format, parse_room_name, to_storage
from pacer.utils.db import insert_ignore, lock_for_update
from pacer.utils.locks import progress_locks
from pacer.utils.logger import get_logger

logger = get_logger("progression")

LESSON_PATCH_FIELDS = frozenset(
    {
        "subtopics",
        "current_subtopic_index",
        "understanding_score",
        "status",
        "questions_asked",
        "key_takeaways",
        "time_spent_seconds",
    }
)


@dataclass
class AdvanceResult:
    progress: LearningProgress
    new_module: int
    new_lesson: str
    module_completed: bool
    course_completed: bool


@dataclass
class QuizOutcome:
    """A graded module quiz. The caller decides `passed`."""
    module_number: int
    score: float
    passing_score: float
    passed: bool
    questions: list[dict] = field(default_factory=list)
    areas_to_review: list[str] = field(default_factory=list)


@dataclass
class AgentSnapshot:
    """What the tutor agent sees for its room."""
    exists: bool
    room: RoomKey
    teaching_state: TeachingState = TeachingState.GREETING
    current_subtopic: int = 0
    subtopics: list[dict] = field(default_factory=list)
    understanding_score: float = 0.0
    teaching_context: dict = field(default_factory=empty_teaching_context)
    is_last_lesson_in_module: bool = False


@dataclass
class ProgressSummary:
    current_module: int
    current_lesson: str
    current_subtopic: int
    teaching_state: TeachingState
    lessons_completed: int
    total_lessons: int
    modules_completed: int
    total_modules: int
    average_understanding: float
    percent_complete: int
    quiz_results: list[ModuleQuizResult]


class ProgressionService:
    """State transitions over the progress store, validated against the catalog."""

    def __init__(self, db: DBSession, clock: Optional[Clock] = None, settings: Optional[Settings] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        self.catalog = CatalogAccessor(db)
        self.streaks = StreakService(self.clock, self.settings)

    # ----- lookup -----

    def _now(self) -> datetime:
        return to_storage(self.clock.now())

    def find_progress(self, user_id: int, course_id: str, for_update: bool = False) -> Optional[LearningProgress]:
        q = self.db.query(LearningProgress).filter(
            LearningProgress.user_id == user_id,
            LearningProgress.course_id == course_id,
        )
        if for_update:
            q = lock_for_update(self.db, q)
        return q.first()

    def _require(self, user_id: int, course_id: str) -> LearningProgress:
        progress = self.find_progress(user_id, course_id, for_update=True)
        if progress is None:
            raise NotFound("Learning progress not found")
        return progress

    def _lesson_entry(self, progress: LearningProgress, module_number: int, lesson_number: str) -> Optional[LessonProgress]:
        return (
            self.db.query(LessonProgress)
            .filter(
                LessonProgress.progress_id == progress.id,
                LessonProgress.module_number == module_number,
                LessonProgress.lesson_number == lesson_number,
            )
            .first()
        )

    # ----- operations -----

    def get_or_create_progress(self, user_id: int, course_id: str) -> LearningProgress:
        course = self.catalog.get_course(course_id, user_id)
        progress = self.find_progress(user_id, course_id)
        if progress is not None:
            return progress

        start = self.catalog.first_lesson(course)
        if start is None:
            raise NotFound("Course has no lessons")

        now = self._now()
        inserted = insert_ignore(
            self.db,
            LearningProgress.__table__,
            [
                {
                    "user_id": user_id,
                    "course_id": course_id,
                    "current_module": start.module_number,
                    "current_lesson": start.lesson_number,
                    "current_subtopic": 0,
                    "teaching_state": TeachingState.GREETING,
                    "teaching_context": empty_teaching_context(),
                    "created_at": now,
                    "updated_at": now,
                }
            ],
            ["user_id", "course_id"],
        )
        self.db.commit()
        if inserted:
            logger.info("progress created user_id=%s course_id=%s", user_id, course_id)
        progress = self.find_progress(user_id, course_id)
        if progress is None:
            raise NotFound("Learning progress not found")
        return progress

    def _transition(self, progress: LearningProgress, target: TeachingState) -> bool:
        current = progress.teaching_state
        if target == current:
            return False
        if current == TeachingState.COMPLETED:
            raise InvalidTransition(f"Cannot move from completed to {target.value}")
        if target == TeachingState.ANSWERING_QUESTION:
            progress.resume_state = current
        elif current == TeachingState.ANSWERING_QUESTION:
            progress.resume_state = None
        progress.teaching_state = target
        return True

    def update_teaching_state(
        self,
        user_id: int,
        course_id: str,
        state: TeachingState,
        current_subtopic: Optional[int] = None,
    ) -> LearningProgress:
        state = TeachingState(state)
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            changed = self._transition(progress, state)
            if current_subtopic is not None:
                progress.current_subtopic = current_subtopic
            progress.last_session_at = self._now()
            self.db.commit()
            if changed:
                logger.info("teaching state user_id=%s course_id=%s state=%s", user_id, course_id, state.value)
            return progress

    def resume_after_question(self, user_id: int, course_id: str) -> LearningProgress:
        """Leave answering_question for the state that invoked it."""
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            if progress.teaching_state != TeachingState.ANSWERING_QUESTION:
                return progress
            self._transition(progress, progress.resume_state or TeachingState.EXPLAINING)
            progress.last_session_at = self._now()
            self.db.commit()
            return progress

    def upsert_lesson_progress(
        self,
        user_id: int,
        course_id: str,
        module_number: int,
        lesson_number: str,
        patch: dict[str, Any],
    ) -> LearningProgress:
        unknown = set(patch) - LESSON_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Unknown lesson progress fields: {sorted(unknown)}")

        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            course = self.catalog.get_course(course_id)
            if self.catalog.get_lesson(course, module_number, lesson_number) is None:
                raise NotFound(f"Lesson {lesson_number} not found in module {module_number}")

            now = self._now()
            entry = self._lesson_entry(progress, module_number, lesson_number)
            if entry is None:
                entry = LessonProgress(
                    module_number=module_number,
                    lesson_number=lesson_number,
                    subtopics=[],
                    current_subtopic_index=0,
                    understanding_score=0.0,
                    status=LessonStatus.IN_PROGRESS,
                    questions_asked=[],
                    key_takeaways=[],
                    time_spent_seconds=0,
                    started_at=now,
                )
                progress.lessons.append(entry)

            was_completed = entry.status == LessonStatus.COMPLETED
            if "subtopics" in patch:
                entry.subtopics = [dict(s) for s in patch["subtopics"] or []]
            if "current_subtopic_index" in patch:
                entry.current_subtopic_index = int(patch["current_subtopic_index"])
            if "understanding_score" in patch:
                entry.understanding_score = min(max(float(patch["understanding_score"]), 0.0), 100.0)
            if "questions_asked" in patch:
                entry.questions_asked = list(patch["questions_asked"] or [])
            if "key_takeaways" in patch:
                entry.key_takeaways = list(patch["key_takeaways"] or [])
            if "time_spent_seconds" in patch:
                entry.time_spent_seconds = int(patch["time_spent_seconds"])
            if patch.get("status") is not None:
                entry.status = LessonStatus(patch["status"])
                if entry.status == LessonStatus.COMPLETED:
                    entry.completed_at = now

            if entry.status == LessonStatus.COMPLETED and not was_completed:
                self.catalog.mark_lesson_completed(course, module_number, lesson_number, now)
                user = self.db.get(User, user_id)
                if user is not None:
                    self.streaks.record_completion(user)
                logger.info(
                    "lesson completed user_id=%s course_id=%s module=%s lesson=%s",
                    user_id, course_id, module_number, lesson_number,
                )

            self.db.commit()
            return progress

    def confirm_subtopic_understanding(
        self,
        user_id: int,
        course_id: str,
        module_number: int,
        lesson_number: str,
        subtopic_index: int,
    ) -> LearningProgress:
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            entry = self._lesson_entry(progress, module_number, lesson_number)
            subtopics = list(entry.subtopics or []) if entry is not None else []
            if entry is None or not 0 <= subtopic_index < len(subtopics):
                logger.warning(
                    "subtopic confirm ignored user_id=%s course_id=%s module=%s lesson=%s index=%s",
                    user_id, course_id, module_number, lesson_number, subtopic_index,
                )
                return progress

            now = self._now()
            confirmed = dict(subtopics[subtopic_index])
            confirmed.update(
                is_completed=True,
                understanding_confirmed=True,
                completed_at=iso_format(now),
            )
            subtopics[subtopic_index] = confirmed
            entry.subtopics = subtopics
            entry.current_subtopic_index = subtopic_index + 1
            if progress.current_module == module_number and progress.current_lesson == lesson_number:
                progress.current_subtopic = subtopic_index + 1
            self.db.commit()
            return progress

    def advance_to_next_lesson(self, user_id: int, course_id: str) -> AdvanceResult:
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            if progress.teaching_state == TeachingState.COMPLETED:
                return AdvanceResult(progress, progress.current_module, progress.current_lesson, False, True)

            course = self.catalog.get_course(course_id)
            current_module = progress.current_module
            current_lesson = progress.current_lesson
            now = self._now()

            new_module, new_lesson = current_module, current_lesson
            module_completed = False
            course_completed = False

            nxt = self.catalog.next_lesson_in_module(course, current_module, current_lesson)
            if nxt is not None:
                new_lesson = nxt.lesson_number
                progress.teaching_state = TeachingState.GREETING
            else:
                module_completed = True
                self.catalog.mark_module_completed(course, current_module)
                nxt = self.catalog.first_lesson_of_next_module(course, current_module)
                if nxt is not None:
                    new_module, new_lesson = nxt.module_number, nxt.lesson_number
                    # A module boundary always gates on the module quiz.
                    progress.teaching_state = TeachingState.QUIZ
                else:
                    course_completed = True
                    progress.teaching_state = TeachingState.COMPLETED
                    progress.completed_at = now
                    self.catalog.mark_course_completed(course)

            progress.current_module = new_module
            progress.current_lesson = new_lesson
            if not course_completed:
                progress.current_subtopic = 0
            progress.resume_state = None
            progress.last_session_at = now
            self.db.commit()

            logger.info(
                "advance user_id=%s course_id=%s from=%s/%s to=%s/%s module_completed=%s course_completed=%s",
                user_id, course_id, current_module, current_lesson, new_module, new_lesson,
                module_completed, course_completed,
            )
            return AdvanceResult(progress, new_module, new_lesson, module_completed, course_completed)

    def save_quiz_result(self, user_id: int, course_id: str, outcome: QuizOutcome) -> LearningProgress:
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            course = self.catalog.get_course(course_id)
            if self.catalog.get_module(course, outcome.module_number) is None:
                raise NotFound(f"Module {outcome.module_number} not found in course")

            existing = (
                self.db.query(ModuleQuizResult)
                .filter(
                    ModuleQuizResult.progress_id == progress.id,
                    ModuleQuizResult.module_number == outcome.module_number,
                )
                .first()
            )
            result = existing or ModuleQuizResult(module_number=outcome.module_number, attempts=0)
            result.score = outcome.score
            result.passing_score = outcome.passing_score
            result.passed = bool(outcome.passed)
            result.questions = [dict(q) for q in outcome.questions]
            result.areas_to_review = list(outcome.areas_to_review)
            result.attempts = (result.attempts or 0) + 1
            result.completed_at = self._now()
            if existing is None:
                progress.quizzes.append(result)

            self.db.commit()
            logger.info(
                "quiz saved user_id=%s course_id=%s module=%s score=%s passed=%s attempts=%s",
                user_id, course_id, outcome.module_number, outcome.score, result.passed, result.attempts,
            )
            return progress

    def update_teaching_context(
        self,
        user_id: int,
        course_id: str,
        *,
        understood_concept: Optional[str] = None,
        struggling_area: Optional[str] = None,
        learning_preference: Optional[str] = None,
        analogy_used: Optional[str] = None,
        last_topic_taught: Optional[str] = None,
    ) -> LearningProgress:
        with progress_locks.hold((user_id, course_id)):
            progress = self._require(user_id, course_id)
            context = empty_teaching_context()
            context.update(progress.teaching_context or {})
            for key, value in (
                ("understood_concepts", understood_concept),
                ("struggling_areas", struggling_area),
                ("learning_preferences", learning_preference),
                ("analogies_used", analogy_used),
            ):
                items = list(context.get(key) or [])
                if value and value not in items:
                    items.append(value)
                context[key] = items
            if last_topic_taught:
                context["last_topic_taught"] = last_topic_taught
            # Reassign so the JSON column is flagged dirty.
            progress.teaching_context = context
            self.db.commit()
            return progress

    def get_progress_summary(self, user_id: int, course_id: str) -> ProgressSummary:
        progress = self.find_progress(user_id, course_id)
        if progress is None:
            raise NotFound("Learning progress not found")
        course = self.catalog.get_course(course_id)
        total_modules, total_lessons = self.catalog.totals(course)

        entries = list(progress.lessons)
        lessons_completed = sum(1 for lp in entries if lp.status == LessonStatus.COMPLETED)
        modules_completed = sum(1 for q in progress.quizzes if q.passed)
        average = sum(lp.understanding_score or 0 for lp in entries) / len(entries) if entries else 0.0
        percent = round(lessons_completed * 100 / total_lessons) if total_lessons else 0

        return ProgressSummary(
            current_module=progress.current_module,
            current_lesson=progress.current_lesson,
            current_subtopic=progress.current_subtopic,
            teaching_state=progress.teaching_state,
            lessons_completed=lessons_completed,
            total_lessons=total_lessons,
            modules_completed=modules_completed,
            total_modules=total_modules,
            average_understanding=average,
            percent_complete=min(percent, 100),
            quiz_results=list(progress.quizzes),
        )

    # ----- tutor agent -----

    def get_progress_by_room_name(self, room_name: str) -> tuple[Optional[LearningProgress], RoomKey]:
        """Resolve a tutor room to the course owner's progress (None if not started)."""
        key = parse_room_name(room_name)
        progress = (
            self.db.query(LearningProgress)
            .join(Course, Course.id == LearningProgress.course_id)
            .filter(LearningProgress.course_id == key.course_id, LearningProgress.user_id == Course.user_id)
            .first()
        )
        return progress, key

    def agent_snapshot(self, room_name: str) -> AgentSnapshot:
        progress, key = self.get_progress_by_room_name(room_name)
        if progress is None:
            return AgentSnapshot(exists=False, room=key)

        entry = self._lesson_entry(progress, key.module_number, key.lesson_number)
        course = self.catalog.get_course(key.course_id)
        return AgentSnapshot(
            exists=True,
            room=key,
            teaching_state=progress.teaching_state,
            current_subtopic=entry.current_subtopic_index if entry is not None else 0,
            subtopics=list(entry.subtopics or []) if entry is not None else [],
            understanding_score=entry.understanding_score if entry is not None else 0.0,
            teaching_context=dict(progress.teaching_context or empty_teaching_context()),
            is_last_lesson_in_module=self.catalog.is_last_lesson_in_module(
                course, key.module_number, key.lesson_number
            ),
        )

    def agent_update(
        self,
        room_name: str,
        *,
        teaching_state: Optional[TeachingState] = None,
        current_subtopic: Optional[int] = None,
        understanding_confirmed: bool = False,
        lesson_complete: bool = False,
        understood_concept: Optional[str] = None,
        struggling_area: Optional[str] = None,
    ) -> bool:
        """Apply a tutor agent's report. Returns False when the room has no progress yet."""
        progress, key = self.get_progress_by_room_name(room_name)
        if progress is None:
            return False

        user_id, course_id = progress.user_id, progress.course_id
        if teaching_state is not None:
            self.update_teaching_state(user_id, course_id, teaching_state, current_subtopic)
        if understanding_confirmed and current_subtopic is not None:
            self.confirm_subtopic_understanding(
                user_id, course_id, key.module_number, key.lesson_number, current_subtopic
            )
        if lesson_complete:
            self.upsert_lesson_progress(
                user_id, course_id, key.module_number, key.lesson_number, {"status": LessonStatus.COMPLETED}
            )
        if understood_concept or struggling_area:
            self.update_teaching_context(
                user_id, course_id, understood_concept=understood_concept, struggling_area=struggling_area
            )
        return True
