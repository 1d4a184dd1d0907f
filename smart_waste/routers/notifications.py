from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from smart_waste.middlewares.auth_middleware import AuthState, get_current_user
from smart_waste.services.notifications import (
    UserNotificationService,
    get_user_notification_service,
)
from smart_waste.utils.responses import ResponseBuilder

notifications_router = APIRouter()


@notifications_router.get("")
async def get_notifications(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    service: UserNotificationService = Depends(get_user_notification_service),
):
    """
    Get notifications for the current user, newest first.

    Expired notifications are purged before the page is read.
    """
    notifications, total, unread_count = await service.get_user_notifications(
        current_user.user_id, page=page, limit=limit, unread_only=unread_only
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[n.model_dump(by_alias=True) for n in notifications],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(notifications)} notifications",
        meta={"unreadCount": unread_count},
    )


@notifications_router.get("/unread-count")
async def get_unread_count(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    """Count for notification badges in the UI"""
    unread_count = await service.get_unread_count(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data={"unreadCount": unread_count},
        message="Unread count retrieved",
    )


@notifications_router.put("/read-all")
async def mark_all_notifications_as_read(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    updated_count = await service.mark_all_as_read(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data={"updatedCount": updated_count},
        message=f"Marked {updated_count} notifications as read",
    )


@notifications_router.delete("/all/clear")
async def clear_all_notifications(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    cleared_count = await service.clear_all(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data={"clearedCount": cleared_count},
        message=f"Cleared {cleared_count} notifications",
    )


@notifications_router.get("/{notification_id}")
async def get_notification(
    request: Request,
    notification_id: Annotated[str, Path(description="Notification ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    notification = await service.get_notification(current_user.user_id, notification_id)

    return ResponseBuilder.success(
        request=request,
        data=notification.model_dump(by_alias=True),
        message="Notification retrieved",
    )


@notifications_router.put("/{notification_id}/read")
async def mark_notification_as_read(
    request: Request,
    notification_id: Annotated[str, Path(description="Notification ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    notification = await service.mark_as_read(current_user.user_id, notification_id)
    unread_count = await service.get_unread_count(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data={
            "notification": notification.model_dump(by_alias=True),
            "unreadCount": unread_count,
        },
        message="Notification marked as read",
    )


@notifications_router.delete("/{notification_id}")
async def delete_notification(
    request: Request,
    notification_id: Annotated[str, Path(description="Notification ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    service: UserNotificationService = Depends(get_user_notification_service),
):
    await service.delete_notification(current_user.user_id, notification_id)

    return ResponseBuilder.success(request=request, message="Notification deleted")
