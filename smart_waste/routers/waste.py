from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, status

from smart_waste.config.settings import settings
from smart_waste.middlewares.auth_middleware import AuthState, get_current_user
from smart_waste.schemas.waste_schemas import (
    ClassificationFeedbackRequest,
    ClassifyWasteRequest,
)
from smart_waste.services.waste_service import WasteService, get_waste_service
from smart_waste.utils.responses import ResponseBuilder

waste_router = APIRouter()


@waste_router.post("/classify", status_code=status.HTTP_201_CREATED)
async def classify_waste(
    request: Request,
    classify_request: ClassifyWasteRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    waste_service: WasteService = Depends(get_waste_service),
):
    """Classify a waste item against the disposal guide and record it"""
    classification = await waste_service.classify(current_user.user_id, classify_request)

    return ResponseBuilder.success(
        request=request,
        data=classification.model_dump(by_alias=True),
        message="Waste classified successfully",
        status_code=status.HTTP_201_CREATED,
    )


@waste_router.get("/history")
async def get_history(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    waste_service: WasteService = Depends(get_waste_service),
):
    records, total = await waste_service.get_history(
        current_user.user_id, page=page, limit=limit
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[record.model_dump(by_alias=True) for record in records],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(records)} classifications",
    )


@waste_router.get("/stats")
async def get_stats(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    waste_service: WasteService = Depends(get_waste_service),
):
    stats = await waste_service.get_stats(current_user)

    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(by_alias=True),
        message="Waste statistics retrieved",
    )


@waste_router.get("/search")
async def search_guide(
    request: Request,
    q: str = Query("", description="Item to look up, e.g. 'bottle'"),
    waste_service: WasteService = Depends(get_waste_service),
):
    """Public search over the disposal guide items"""
    results = await waste_service.search(q)

    return ResponseBuilder.success(
        request=request,
        data=results.model_dump(by_alias=True),
        message=f"Found {len(results.results)} matching categories",
    )


@waste_router.put("/{record_id}/feedback")
async def submit_feedback(
    request: Request,
    feedback_request: ClassificationFeedbackRequest,
    record_id: Annotated[str, Path(description="Waste record ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    waste_service: WasteService = Depends(get_waste_service),
):
    record = await waste_service.submit_feedback(
        current_user.user_id, record_id, feedback_request
    )

    return ResponseBuilder.success(
        request=request,
        data=record.model_dump(by_alias=True),
        message="Feedback recorded",
    )


@waste_router.delete("/{record_id}")
async def delete_record(
    request: Request,
    record_id: Annotated[str, Path(description="Waste record ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    waste_service: WasteService = Depends(get_waste_service),
):
    await waste_service.delete_record(current_user.user_id, record_id)

    return ResponseBuilder.success(request=request, message="Waste record deleted")
