"""
Pacer data models. Single import surface for DB entities and enums.

Catalog and user directory (pacer.models.models):
- User, Course, Module, Lesson, CourseStatus, ItemStatus

Progress store (pacer.models.progress):
- LearningProgress, LessonProgress, ModuleQuizResult, TeachingState, LessonStatus

Notification store (pacer.models.notification):
- ScheduledNotification, NotificationType, NotificationStatus
"""

from pacer.models.models import User, Course, Module, Lesson, CourseStatus, ItemStatus
from pacer.models.progress import (
    LearningProgress,
    LessonProgress,
    ModuleQuizResult,
    TeachingState,
    LessonStatus,
    empty_teaching_context,
)
from pacer.models.notification import ScheduledNotification, NotificationType, NotificationStatus

__all__ = [
    "User",
    "Course",
    "Module",
    "Lesson",
    "CourseStatus",
    "ItemStatus",
    "LearningProgress",
    "LessonProgress",
    "ModuleQuizResult",
    "TeachingState",
    "LessonStatus",
    "empty_teaching_context",
    "ScheduledNotification",
    "NotificationType",
    "NotificationStatus",
]
