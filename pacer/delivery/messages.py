"""Notification email builders. Template is selected by notification type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from html import escape
from typing import Optional

from pacer.models.notification import NotificationType
from pacer.utils.common import from_storage, resolve_zone

TEMPLATE_REMINDER = """<html><body>
<p>Hello {name},</p>
<h2>Your lesson starts in {minutes} minutes!</h2>
<p>Get ready for your upcoming lesson in <strong>{course_title}</strong>.</p>
<p>Scheduled Time: {lesson_time}</p>
<p><a href="{course_url}">Go to Course</a></p>
<p style="font-size:12px">Don't want to receive lesson reminders? <a href="{unsubscribe_url}">Update your notification preferences</a></p>
</body></html>"""

TEMPLATE_LESSON_START = """<html><body>
<p>Hello {name},</p>
<h2>It's time for your lesson!</h2>
<p>Your lesson in <strong>{course_title}</strong> is starting now ({lesson_time}).</p>
<p><a href="{course_url}">Start Lesson</a></p>
<p style="font-size:12px">Don't want to receive lesson reminders? <a href="{unsubscribe_url}">Update your notification preferences</a></p>
</body></html>"""


@dataclass(frozen=True)
class OutgoingMessage:
    to: str
    subject: str
    html: str


def format_lesson_time(scheduled_time: datetime, zone_name: Optional[str]) -> str:
    """12-hour local wall time, e.g. "09:00 AM"."""
    local = from_storage(scheduled_time).astimezone(resolve_zone(zone_name))
    return local.strftime("%I:%M %p")


def build_notification_message(
    *,
    notification_type: NotificationType,
    to: str,
    name: Optional[str],
    course_id: str,
    course_title: str,
    scheduled_time: datetime,
    zone_name: Optional[str],
    reminder_minutes: int,
    web_app_url: str,
    lesson_time: Optional[datetime] = None,
) -> OutgoingMessage:
    """
    Render the email for one notification row.

    `lesson_time` is the slot recorded at generation and takes precedence over
    `reminder_minutes` when present.
    """
    if notification_type == NotificationType.REMINDER and lesson_time is not None:
        reminder_minutes = int((lesson_time - scheduled_time).total_seconds() // 60)
    base = web_app_url.rstrip("/")
    params = {
        "name": escape(name or to.split("@", 1)[0]),
        "course_title": escape(course_title),
        "minutes": reminder_minutes,
        "course_url": f"{base}/courses/{course_id}/ai",
        "unsubscribe_url": f"{base}/settings/notifications",
    }
    if notification_type == NotificationType.REMINDER:
        # Reminder rows are stamped before the slot; show the slot time.
        lesson_at = lesson_time or scheduled_time + timedelta(minutes=reminder_minutes)
        subject = f'Reminder: Your lesson in "{course_title}" starts in {reminder_minutes} minutes'
        template = TEMPLATE_REMINDER
    else:
        lesson_at = lesson_time or scheduled_time
        subject = f'It\'s time for your lesson in "{course_title}"'
        template = TEMPLATE_LESSON_START

    params["lesson_time"] = format_lesson_time(lesson_at, zone_name)
    return OutgoingMessage(to=to, subject=subject, html=template.format(**params))
