"""
Builders for the in-app notifications raised by domain events.

Each helper only adds a row to the session; the caller decides when to
commit and treats failures as non-fatal.
"""

from typing import Optional

from sqlalchemy.orm import Session

from smart_waste.db.models import (
    Feedback,
    Notification,
    NotificationType,
    Pickup,
    Priority,
)


def _pickup_day(pickup: Pickup) -> str:
    return pickup.pickup_date.strftime("%d/%m/%Y")


def notify_pickup_scheduled(db: Session, pickup: Pickup) -> Notification:
    notification = Notification(
        user_id=pickup.user_id,
        type=NotificationType.PICKUP_SCHEDULED,
        title="Pickup Scheduled",
        message=f"Your {pickup.waste_type.value} waste pickup has been scheduled for {_pickup_day(pickup)}",
        icon="calendar",
        color="#667eea",
        related_pickup_id=pickup.id,
        action_url="/my-pickups",
        action_label="View Pickup",
    )
    db.add(notification)
    return notification


def notify_pickup_completed(db: Session, pickup: Pickup, points: int) -> Notification:
    notification = Notification(
        user_id=pickup.user_id,
        type=NotificationType.PICKUP_COMPLETED,
        title="Pickup Completed!",
        message=f"Your {pickup.waste_type.value} waste pickup was completed successfully. +{points} points earned!",
        icon="check",
        color="#4caf50",
        related_pickup_id=pickup.id,
        action_url="/rewards",
        action_label="View Rewards",
    )
    db.add(notification)
    return notification


def notify_pickup_cancelled(
    db: Session, pickup: Pickup, reason: Optional[str] = None
) -> Notification:
    notification = Notification(
        user_id=pickup.user_id,
        type=NotificationType.PICKUP_CANCELLED,
        title="Pickup Cancelled",
        message=f"Your pickup scheduled for {_pickup_day(pickup)} was cancelled. {reason or ''}".strip(),
        icon="alert",
        color="#f44336",
        related_pickup_id=pickup.id,
        priority=Priority.HIGH,
    )
    db.add(notification)
    return notification


_STATUS_NOTIFICATIONS = {
    "confirmed": (NotificationType.PICKUP_CONFIRMED, "Pickup Confirmed", "confirmed"),
    "in-progress": (
        NotificationType.PICKUP_IN_PROGRESS,
        "Collector On The Way",
        "picked up by a collector and is in progress",
    ),
}


def notify_pickup_status(db: Session, pickup: Pickup) -> Optional[Notification]:
    """Confirmation and in-progress updates; other statuses have dedicated helpers."""
    entry = _STATUS_NOTIFICATIONS.get(pickup.status.value)
    if entry is None:
        return None
    notification_type, title, phrase = entry
    notification = Notification(
        user_id=pickup.user_id,
        type=notification_type,
        title=title,
        message=f"Your pickup scheduled for {_pickup_day(pickup)} has been {phrase}.",
        icon="recycle",
        color="#2196f3",
        related_pickup_id=pickup.id,
        action_url="/my-pickups",
        action_label="View Pickup",
    )
    db.add(notification)
    return notification


def notify_level_up(db: Session, user_id: str, new_level: int) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=NotificationType.LEVEL_UP,
        title="Level Up!",
        message=f"Amazing! You've reached Level {new_level}. Keep up the great work!",
        icon="award",
        color="#9c27b0",
        action_url="/rewards",
        action_label="View Progress",
        priority=Priority.HIGH,
    )
    db.add(notification)
    return notification


def notify_points_earned(
    db: Session, user_id: str, points: int, reason: Optional[str] = None
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=NotificationType.POINTS_EARNED,
        title="Points Earned!",
        message=f"You earned {points} points {f'for {reason}' if reason else ''}".strip(),
        icon="award",
        color="#ffc107",
        action_url="/rewards",
    )
    db.add(notification)
    return notification


def notify_feedback_response(db: Session, feedback: Feedback) -> Notification:
    notification = Notification(
        user_id=feedback.user_id,
        type=NotificationType.FEEDBACK_RESPONSE,
        title="Feedback Response",
        message=f'We\'ve responded to your {feedback.type.value}: "{feedback.subject}"'[:500],
        icon="message",
        color="#2196f3",
        related_feedback_id=feedback.id,
        action_url="/feedback",
        action_label="View Response",
    )
    db.add(notification)
    return notification
