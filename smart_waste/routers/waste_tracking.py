from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from smart_waste.config.settings import settings
from smart_waste.db.models import TrackingStatus
from smart_waste.middlewares.auth_middleware import (
    AuthState,
    require_admin,
    require_collector,
    require_industry,
    require_user_type,
)
from smart_waste.schemas.waste_tracking_schemas import (
    CreateTrackingRequest,
    UpdateTrackingStatusRequest,
)
from smart_waste.services.waste_tracking_service import (
    WasteTrackingService,
    get_waste_tracking_service,
)
from smart_waste.utils.responses import ResponseBuilder

waste_tracking_router = APIRouter()

require_industry_or_admin = require_user_type("industry", "admin")


@waste_tracking_router.get("/track/{tracking_id}")
async def track_shipment(
    request: Request,
    tracking_id: Annotated[str, Path(description="Tracking ID, e.g. WM-2025-000001")],
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    """Public lookup of a shipment and its full status history"""
    tracking = await tracking_service.get_by_tracking_id(tracking_id)

    return ResponseBuilder.success(
        request=request,
        data=tracking.model_dump(by_alias=True),
        message="Tracking record found",
    )


@waste_tracking_router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_tracking(
    request: Request,
    create_request: CreateTrackingRequest,
    current_user: Annotated[AuthState, Depends(require_industry)],
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    tracking = await tracking_service.create_tracking(current_user, create_request)

    return ResponseBuilder.success(
        request=request,
        data=tracking.model_dump(by_alias=True),
        message=f"Tracking {tracking.tracking_id} created",
        status_code=status.HTTP_201_CREATED,
    )


@waste_tracking_router.get("/my-trackings")
async def get_my_trackings(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_industry)],
    tracking_status: Optional[TrackingStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    trackings, total = await tracking_service.get_my_trackings(
        current_user.user_id,
        status=tracking_status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[tracking.model_dump(by_alias=True) for tracking in trackings],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(trackings)} tracking records",
    )


@waste_tracking_router.get("/stats")
async def get_tracking_stats(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_industry_or_admin)],
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    stats = await tracking_service.get_stats(current_user)

    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(by_alias=True),
        message="Tracking statistics retrieved",
    )


@waste_tracking_router.put("/update-status/{tracking_id}")
async def update_tracking_status(
    request: Request,
    status_request: UpdateTrackingStatusRequest,
    tracking_id: Annotated[str, Path(description="Tracking ID")],
    current_user: Annotated[AuthState, Depends(require_collector)],
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    """Append a status to the shipment's history (admin or pickup agent)"""
    tracking = await tracking_service.update_status(
        tracking_id, status_request, current_user
    )

    return ResponseBuilder.success(
        request=request,
        data=tracking.model_dump(by_alias=True),
        message=f"Tracking status updated to {status_request.status.value}",
    )


@waste_tracking_router.get("/all")
async def get_all_trackings(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_admin)],
    tracking_status: Optional[TrackingStatus] = Query(None, alias="status"),
    industry_id: Optional[str] = Query(None, alias="industryId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    trackings, total = await tracking_service.get_all_trackings(
        status=tracking_status,
        industry_id=industry_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[tracking.model_dump(by_alias=True) for tracking in trackings],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(trackings)} tracking records",
    )


@waste_tracking_router.delete("/{tracking_id}")
async def delete_tracking(
    request: Request,
    tracking_id: Annotated[str, Path(description="Tracking ID")],
    current_user: Annotated[AuthState, Depends(require_admin)],
    tracking_service: WasteTrackingService = Depends(get_waste_tracking_service),
):
    await tracking_service.delete_tracking(tracking_id)

    return ResponseBuilder.success(request=request, message="Tracking record deleted")
