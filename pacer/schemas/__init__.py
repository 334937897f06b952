"""
API schemas package. Import from submodules or from this package.

Example:
    from pacer.schemas import ProgressResponse, StreakResponse
    from pacer.schemas.progress_schemas import ProgressResponse
"""

from pacer.schemas.auth_schemas import AuthTokenPayload
from pacer.schemas.progress_schemas import (
    SubtopicItem,
    LessonProgressResponse,
    QuizResultResponse,
    TeachingContext,
    ProgressResponse,
    UpdateTeachingStateRequest,
    UpdateLessonProgressRequest,
    ConfirmSubtopicRequest,
    AdvanceResponse,
    QuizQuestion,
    SaveQuizRequest,
    SaveQuizResponse,
    UpdateTeachingContextRequest,
    ProgressSummaryResponse,
    StreakResponse,
)
from pacer.schemas.agent_schemas import (
    AgentProgressRequest,
    AgentProgressResponse,
    AgentUpdateRequest,
    AgentUpdateResponse,
)
from pacer.schemas.notification_schemas import (
    NotificationResponse,
    NotificationListResponse,
    GenerateNotificationsRequest,
    GenerateNotificationsResponse,
    DeleteNotificationsResponse,
    RequeueRequest,
    RequeueResponse,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    # progress
    "SubtopicItem",
    "LessonProgressResponse",
    "QuizResultResponse",
    "TeachingContext",
    "ProgressResponse",
    "UpdateTeachingStateRequest",
    "UpdateLessonProgressRequest",
    "ConfirmSubtopicRequest",
    "AdvanceResponse",
    "QuizQuestion",
    "SaveQuizRequest",
    "SaveQuizResponse",
    "UpdateTeachingContextRequest",
    "ProgressSummaryResponse",
    "StreakResponse",
    # agent
    "AgentProgressRequest",
    "AgentProgressResponse",
    "AgentUpdateRequest",
    "AgentUpdateResponse",
    # notifications
    "NotificationResponse",
    "NotificationListResponse",
    "GenerateNotificationsRequest",
    "GenerateNotificationsResponse",
    "DeleteNotificationsResponse",
    "RequeueRequest",
    "RequeueResponse",
]
