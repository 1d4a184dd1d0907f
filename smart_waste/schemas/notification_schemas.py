from datetime import datetime
from typing import Optional

from smart_waste.db.models import NotificationType, Priority
from .camel_base_model import CamelCaseBaseModel as BaseModel


class NotificationResponse(BaseModel):
    """Response schema for an in-app notification"""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    icon: str
    color: str
    read: bool
    read_at: Optional[datetime] = None
    related_pickup_id: Optional[str] = None
    related_feedback_id: Optional[str] = None
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    priority: Priority
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
