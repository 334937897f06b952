"""
Delivery collaborators: channels that send email and the builders that pick the copy.
"""

from pacer.delivery.channels import DeliveryChannel, LoggingChannel, MailgunChannel, build_channel
from pacer.delivery.messages import OutgoingMessage, build_notification_message

__all__ = [
    "DeliveryChannel",
    "LoggingChannel",
    "MailgunChannel",
    "build_channel",
    "OutgoingMessage",
    "build_notification_message",
]
