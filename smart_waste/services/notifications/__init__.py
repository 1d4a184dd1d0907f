from .user_notification_service import (
    UserNotificationService,
    get_user_notification_service,
)
from . import notification_events

__all__ = [
    "UserNotificationService",
    "get_user_notification_service",
    "notification_events",
]
