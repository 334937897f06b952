"""Unit tests for catalog navigation: array order, never lesson-number arithmetic."""
import pytest

from pacer.errors import NotFound
from pacer.models.models import CourseStatus, ItemStatus
from pacer.services.catalog_service import CatalogAccessor, LessonRef


@pytest.fixture
def catalog(db_session):
    return CatalogAccessor(db_session)


@pytest.mark.unit
class TestNavigation:
    def test_next_lesson_uses_array_order(self, catalog, test_user, course_factory):
        course = course_factory(test_user, modules=[(1, ["1.9", "1.10", "1.2"])])
        assert catalog.next_lesson_in_module(course, 1, "1.9") == LessonRef(1, "1.10")
        assert catalog.next_lesson_in_module(course, 1, "1.10") == LessonRef(1, "1.2")
        assert catalog.next_lesson_in_module(course, 1, "1.2") is None

    def test_previous_lesson(self, catalog, test_course):
        assert catalog.previous_lesson_in_module(test_course, 1, "1.2") == LessonRef(1, "1.1")
        assert catalog.previous_lesson_in_module(test_course, 1, "1.1") is None

    def test_unknown_lesson_raises(self, catalog, test_course):
        with pytest.raises(NotFound):
            catalog.next_lesson_in_module(test_course, 1, "9.9")
        with pytest.raises(NotFound):
            catalog.next_lesson_in_module(test_course, 7, "1.1")

    def test_next_module_is_number_plus_one(self, catalog, test_user, course_factory):
        course = course_factory(test_user, modules=[(1, ["1.1"]), (3, ["3.1"])])
        assert catalog.first_lesson_of_next_module(course, 1) is None

    def test_next_module_without_lessons_does_not_count(self, catalog, test_user, course_factory):
        course = course_factory(test_user, modules=[(1, ["1.1"]), (2, [])])
        assert catalog.first_lesson_of_next_module(course, 1) is None

    def test_first_lesson_skips_empty_modules(self, catalog, test_user, course_factory):
        course = course_factory(test_user, modules=[(1, []), (2, ["2.1"])])
        assert catalog.first_lesson(course) == LessonRef(2, "2.1")

    def test_last_lesson_in_module(self, catalog, test_course):
        assert catalog.is_last_lesson_in_module(test_course, 1, "1.2") is True
        assert catalog.is_last_lesson_in_module(test_course, 1, "1.1") is False
        assert catalog.is_last_lesson_in_module(test_course, 5, "5.1") is False

    def test_totals(self, catalog, test_course):
        assert catalog.totals(test_course) == (2, 3)

    def test_get_course_scoped_to_owner(self, catalog, test_course, test_user):
        assert catalog.get_course("c1", test_user.id) is test_course
        with pytest.raises(NotFound):
            catalog.get_course("c1", test_user.id + 1)


@pytest.mark.unit
class TestWriteBacks:
    def test_lesson_completion_starts_module(self, catalog, test_course):
        from datetime import datetime
        catalog.mark_lesson_completed(test_course, 1, "1.1", datetime(2025, 3, 10, 6, 0))
        assert catalog.get_lesson(test_course, 1, "1.1").status == ItemStatus.COMPLETED
        assert catalog.get_module(test_course, 1).status == ItemStatus.IN_PROGRESS

    def test_module_and_course_completion(self, catalog, test_course):
        catalog.mark_module_completed(test_course, 2)
        catalog.mark_course_completed(test_course)
        assert catalog.get_module(test_course, 2).status == ItemStatus.COMPLETED
        assert test_course.status == CourseStatus.COMPLETED
