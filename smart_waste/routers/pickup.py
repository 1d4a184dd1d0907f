from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status

from smart_waste.config.settings import settings
from smart_waste.db.models import PickupStatus
from smart_waste.middlewares.auth_middleware import (
    AuthState,
    get_current_user,
    require_collector,
)
from smart_waste.schemas.pickup_schemas import (
    CancelPickupRequest,
    CompletePickupRequest,
    RatePickupRequest,
    SchedulePickupRequest,
    UpdatePickupStatusRequest,
)
from smart_waste.services.pickup_service import PickupService, get_pickup_service
from smart_waste.utils.responses import ResponseBuilder

pickup_router = APIRouter()


@pickup_router.post("/schedule", status_code=status.HTTP_201_CREATED)
async def schedule_pickup(
    request: Request,
    schedule_request: SchedulePickupRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    pickup_service: PickupService = Depends(get_pickup_service),
):
    """
    Schedule a waste pickup.

    Half the base points for the waste type are credited immediately.
    Industry pickups also open a waste tracking record; `trackingId` is
    null when that could not be created.
    """
    pickup, tracking_id = await pickup_service.schedule(current_user, schedule_request)

    return ResponseBuilder.success(
        request=request,
        data={"pickup": pickup.model_dump(by_alias=True), "trackingId": tracking_id},
        message="Pickup scheduled successfully",
        status_code=status.HTTP_201_CREATED,
    )


@pickup_router.get("/my-pickups")
async def get_my_pickups(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    pickup_status: Optional[PickupStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    pickup_service: PickupService = Depends(get_pickup_service),
):
    pickups, total = await pickup_service.get_my_pickups(
        current_user.user_id, status=pickup_status, page=page, limit=limit
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[pickup.model_dump(by_alias=True) for pickup in pickups],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(pickups)} pickups",
    )


@pickup_router.get("/stats")
async def get_pickup_stats(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    pickup_service: PickupService = Depends(get_pickup_service),
):
    stats = await pickup_service.get_stats(current_user)

    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(by_alias=True),
        message="Pickup statistics retrieved",
    )


@pickup_router.get("/{pickup_id}")
async def get_pickup(
    request: Request,
    pickup_id: Annotated[str, Path(description="Pickup ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    pickup_service: PickupService = Depends(get_pickup_service),
):
    pickup = await pickup_service.get_pickup(current_user, pickup_id)

    return ResponseBuilder.success(
        request=request,
        data=pickup.model_dump(by_alias=True),
        message="Pickup retrieved successfully",
    )


@pickup_router.put("/{pickup_id}/cancel")
async def cancel_pickup(
    request: Request,
    pickup_id: Annotated[str, Path(description="Pickup ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    cancel_request: Optional[CancelPickupRequest] = Body(None),
    pickup_service: PickupService = Depends(get_pickup_service),
):
    """Cancel a pickup; the points credited for it are reversed"""
    pickup, tracking_updated = await pickup_service.cancel(
        current_user, pickup_id, cancel_request.reason if cancel_request else None
    )

    return ResponseBuilder.success(
        request=request,
        data={
            "pickup": pickup.model_dump(by_alias=True),
            "trackingUpdated": tracking_updated,
        },
        message="Pickup cancelled successfully",
    )


@pickup_router.put("/{pickup_id}/complete")
async def complete_pickup(
    request: Request,
    pickup_id: Annotated[str, Path(description="Pickup ID")],
    current_user: Annotated[AuthState, Depends(require_collector)],
    complete_request: Optional[CompletePickupRequest] = Body(None),
    pickup_service: PickupService = Depends(get_pickup_service),
):
    """Mark a pickup collected (admin or pickup agent)"""
    pickup, points, tracking_updated = await pickup_service.complete(
        pickup_id, complete_request or CompletePickupRequest(), current_user
    )

    return ResponseBuilder.success(
        request=request,
        data={
            "pickup": pickup.model_dump(by_alias=True),
            "pointsAwarded": points,
            "trackingUpdated": tracking_updated,
        },
        message=f"Pickup completed. {points} points awarded",
    )


@pickup_router.put("/{pickup_id}/rate")
async def rate_pickup(
    request: Request,
    rate_request: RatePickupRequest,
    pickup_id: Annotated[str, Path(description="Pickup ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    pickup_service: PickupService = Depends(get_pickup_service),
):
    pickup = await pickup_service.rate(current_user, pickup_id, rate_request)

    return ResponseBuilder.success(
        request=request,
        data=pickup.model_dump(by_alias=True),
        message="Pickup rated successfully",
    )


@pickup_router.put("/{pickup_id}/status")
async def update_pickup_status(
    request: Request,
    status_request: UpdatePickupStatusRequest,
    pickup_id: Annotated[str, Path(description="Pickup ID")],
    current_user: Annotated[AuthState, Depends(require_collector)],
    pickup_service: PickupService = Depends(get_pickup_service),
):
    """Move a pickup to confirmed or in-progress (admin or pickup agent)"""
    pickup = await pickup_service.update_status(pickup_id, status_request, current_user)

    return ResponseBuilder.success(
        request=request,
        data=pickup.model_dump(by_alias=True),
        message=f"Pickup status updated to {pickup.status.value}",
    )
