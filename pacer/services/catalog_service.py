"""
Read-only view over a course's module/lesson tree, plus the completion write-backs
progression is allowed to make.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from pacer.errors import NotFound
from pacer.models.models import Course, Module, Lesson, CourseStatus, ItemStatus


@dataclass(frozen=True)
class LessonRef:
    module_number: int
    lesson_number: str


class CatalogAccessor:
    """Answers "does this exist" and "what is next" over the catalog tables."""

    def __init__(self, db: DBSession):
        self.db = db

    def get_course(self, course_id: str, user_id: Optional[int] = None) -> Course:
        q = self.db.query(Course).filter(Course.id == course_id)
        if user_id is not None:
            q = q.filter(Course.user_id == user_id)
        course = q.first()
        if course is None:
            raise NotFound("Course not found")
        return course

    def get_module(self, course: Course, module_number: int) -> Optional[Module]:
        for m in course.modules:
            if m.module_number == module_number:
                return m
        return None

    def get_lesson(self, course: Course, module_number: int, lesson_number: str) -> Optional[Lesson]:
        module = self.get_module(course, module_number)
        if module is None:
            return None
        for lesson in module.lessons:
            if lesson.lesson_number == lesson_number:
                return lesson
        return None

    def first_lesson(self, course: Course) -> Optional[LessonRef]:
        for m in course.modules:
            if m.lessons:
                return LessonRef(m.module_number, m.lessons[0].lesson_number)
        return None

    def next_lesson_in_module(self, course: Course, module_number: int, lesson_number: str) -> Optional[LessonRef]:
        """Next lesson by array order inside the module; None at the module's end."""
        module = self.get_module(course, module_number)
        if module is None:
            raise NotFound("Current module not found in course")
        numbers = [lesson.lesson_number for lesson in module.lessons]
        if lesson_number not in numbers:
            raise NotFound("Current lesson not found in module")
        idx = numbers.index(lesson_number)
        if idx < len(numbers) - 1:
            return LessonRef(module_number, numbers[idx + 1])
        return None

    def previous_lesson_in_module(self, course: Course, module_number: int, lesson_number: str) -> Optional[LessonRef]:
        module = self.get_module(course, module_number)
        if module is None:
            raise NotFound("Current module not found in course")
        numbers = [lesson.lesson_number for lesson in module.lessons]
        if lesson_number not in numbers:
            raise NotFound("Current lesson not found in module")
        idx = numbers.index(lesson_number)
        return LessonRef(module_number, numbers[idx - 1]) if idx > 0 else None

    def first_lesson_of_next_module(self, course: Course, module_number: int) -> Optional[LessonRef]:
        """Next module is module_number + 1; it only counts if it has lessons."""
        nxt = self.get_module(course, module_number + 1)
        if nxt is None or not nxt.lessons:
            return None
        return LessonRef(nxt.module_number, nxt.lessons[0].lesson_number)

    def is_last_lesson_in_module(self, course: Course, module_number: int, lesson_number: str) -> bool:
        module = self.get_module(course, module_number)
        if module is None or not module.lessons:
            return False
        return module.lessons[-1].lesson_number == lesson_number

    def totals(self, course: Course) -> tuple[int, int]:
        """(total_modules, total_lessons)"""
        modules = list(course.modules)
        return len(modules), sum(len(m.lessons) for m in modules)

    # ----- write-backs (completion/status fields only) -----

    def mark_lesson_completed(self, course: Course, module_number: int, lesson_number: str, now: datetime) -> None:
        lesson = self.get_lesson(course, module_number, lesson_number)
        if lesson is None:
            return
        lesson.status = ItemStatus.COMPLETED
        lesson.updated_at = now
        module = lesson.module
        if module.status == ItemStatus.PENDING:
            module.status = ItemStatus.IN_PROGRESS

    def mark_module_completed(self, course: Course, module_number: int) -> None:
        module = self.get_module(course, module_number)
        if module is not None:
            module.status = ItemStatus.COMPLETED

    def mark_course_completed(self, course: Course) -> None:
        course.status = CourseStatus.COMPLETED
