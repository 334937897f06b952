from pydantic import BaseModel, Field
from typing import Optional

from pacer.models.notification import NotificationStatus, NotificationType


class NotificationResponse(BaseModel):
    id: int
    course_id: str
    scheduled_time: str
    notification_type: NotificationType
    status: NotificationStatus
    sent_at: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class GenerateNotificationsRequest(BaseModel):
    days_ahead: Optional[int] = Field(default=None, ge=1, le=30)


class GenerateNotificationsResponse(BaseModel):
    course_id: str
    created: int


class DeleteNotificationsResponse(BaseModel):
    course_id: str
    deleted: int


class RequeueRequest(BaseModel):
    course_id: Optional[str] = None


class RequeueResponse(BaseModel):
    requeued: int
