from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from smart_waste.config.settings import settings
from smart_waste.db.models import FeedbackStatus, FeedbackType, Priority
from smart_waste.middlewares.auth_middleware import (
    AuthState,
    get_current_user,
    require_admin,
)
from smart_waste.schemas.feedback_schemas import (
    RateFeedbackRequest,
    RespondFeedbackRequest,
    SubmitFeedbackRequest,
)
from smart_waste.services.feedback_service import FeedbackService, get_feedback_service
from smart_waste.utils.responses import ResponseBuilder

feedback_router = APIRouter()


@feedback_router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    request: Request,
    feedback_request: SubmitFeedbackRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    feedback = await feedback_service.submit(current_user.user_id, feedback_request)

    return ResponseBuilder.success(
        request=request,
        data=feedback.model_dump(by_alias=True),
        message="Feedback submitted successfully",
        status_code=status.HTTP_201_CREATED,
    )


@feedback_router.get("/my-feedback")
async def get_my_feedback(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    feedback_status: Optional[FeedbackStatus] = Query(None, alias="status"),
    feedback_type: Optional[FeedbackType] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    feedbacks, total = await feedback_service.get_my_feedback(
        current_user.user_id,
        status=feedback_status,
        feedback_type=feedback_type,
        page=page,
        limit=limit,
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[feedback.model_dump(by_alias=True) for feedback in feedbacks],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(feedbacks)} feedback entries",
    )


@feedback_router.get("/my/stats")
async def get_feedback_stats(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    stats = await feedback_service.get_stats(current_user)

    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(by_alias=True),
        message="Feedback statistics retrieved",
    )


@feedback_router.get("/admin/all")
async def get_all_feedback(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_admin)],
    feedback_status: Optional[FeedbackStatus] = Query(None, alias="status"),
    feedback_type: Optional[FeedbackType] = Query(None, alias="type"),
    priority: Optional[Priority] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    feedbacks, total = await feedback_service.get_all_feedback(
        status=feedback_status,
        feedback_type=feedback_type,
        priority=priority,
        page=page,
        limit=limit,
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[feedback.model_dump(by_alias=True) for feedback in feedbacks],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(feedbacks)} feedback entries",
    )


@feedback_router.get("/{feedback_id}")
async def get_feedback(
    request: Request,
    feedback_id: Annotated[str, Path(description="Feedback ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    feedback = await feedback_service.get_feedback(current_user, feedback_id)

    return ResponseBuilder.success(
        request=request,
        data=feedback.model_dump(by_alias=True),
        message="Feedback retrieved successfully",
    )


@feedback_router.put("/{feedback_id}/rate")
async def rate_feedback_response(
    request: Request,
    rate_request: RateFeedbackRequest,
    feedback_id: Annotated[str, Path(description="Feedback ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    """Rate the admin response as helpful or not"""
    feedback = await feedback_service.rate_response(
        current_user.user_id, feedback_id, rate_request
    )

    return ResponseBuilder.success(
        request=request,
        data=feedback.model_dump(by_alias=True),
        message="Thank you for rating the response",
    )


@feedback_router.put("/{feedback_id}/respond")
async def respond_to_feedback(
    request: Request,
    respond_request: RespondFeedbackRequest,
    feedback_id: Annotated[str, Path(description="Feedback ID")],
    current_user: Annotated[AuthState, Depends(require_admin)],
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    feedback = await feedback_service.respond(feedback_id, respond_request, current_user)

    return ResponseBuilder.success(
        request=request,
        data=feedback.model_dump(by_alias=True),
        message="Response recorded",
    )
