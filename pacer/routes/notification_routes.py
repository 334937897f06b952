"""
Notification schedule endpoints: generate, inspect, clear, and requeue failed items.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pacer.config import get_db, get_settings
from pacer.models.models import User
from pacer.models.notification import NotificationStatus, ScheduledNotification
from pacer.schemas.notification_schemas import (
    DeleteNotificationsResponse,
    GenerateNotificationsRequest,
    GenerateNotificationsResponse,
    NotificationListResponse,
    NotificationResponse,
    RequeueRequest,
    RequeueResponse,
)
from pacer.services.catalog_service import CatalogAccessor
from pacer.services.notification_store import NotificationStore
from pacer.services.schedule_generator import ScheduleGenerator
from pacer.utils.auth import get_current_user
from pacer.utils.clock import Clock, get_clock
from pacer.utils.common import iso_format, to_storage
from pacer.utils.logger import get_logger

logger = get_logger("routes.notifications")

notification_routes = APIRouter()


def notification_to_response(n: ScheduledNotification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        course_id=n.course_id,
        scheduled_time=iso_format(n.scheduled_time),
        notification_type=n.notification_type,
        status=n.status,
        sent_at=iso_format(n.sent_at),
        error_message=n.error_message,
        retry_count=n.retry_count or 0,
    )


@notification_routes.post(
    "/courses/{course_id}/notifications/generate", response_model=GenerateNotificationsResponse
)
async def generate_notifications(
    course_id: str,
    req: Optional[GenerateNotificationsRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> GenerateNotificationsResponse:
    """Generate pending notifications for one course now, e.g. right after its schedule is set."""
    course = CatalogAccessor(db).get_course(course_id, current_user.id)
    days_ahead = req.days_ahead if req is not None else None
    created = ScheduleGenerator(db, clock).generate_for_course(course, current_user, days_ahead)
    return GenerateNotificationsResponse(course_id=course_id, created=created)


@notification_routes.get("/courses/{course_id}/notifications", response_model=NotificationListResponse)
async def list_notifications(
    course_id: str,
    status: Optional[NotificationStatus] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationListResponse:
    CatalogAccessor(db).get_course(course_id, current_user.id)
    items = NotificationStore(db).list_for_course(course_id, status)
    return NotificationListResponse(notifications=[notification_to_response(n) for n in items])


@notification_routes.delete("/courses/{course_id}/notifications", response_model=DeleteNotificationsResponse)
async def delete_notifications(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DeleteNotificationsResponse:
    """Drop every notification of a course (schedule changed or course removed)."""
    CatalogAccessor(db).get_course(course_id, current_user.id)
    deleted = NotificationStore(db).delete_for_course(course_id)
    logger.info("notifications deleted course_id=%s count=%s", course_id, deleted)
    return DeleteNotificationsResponse(course_id=course_id, deleted=deleted)


@notification_routes.post("/notifications/requeue", response_model=RequeueResponse)
async def requeue_failed(
    req: RequeueRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RequeueResponse:
    """Move failed notifications under the retry cap back to pending."""
    if req.course_id is not None:
        CatalogAccessor(db).get_course(req.course_id, current_user.id)
    count = NotificationStore(db).requeue_failed(
        get_settings().max_retries, course_id=req.course_id, user_id=current_user.id, now=to_storage(clock.now())
    )
    logger.info("requeued failed notifications course_id=%s count=%s", req.course_id, count)
    return RequeueResponse(requeued=count)
