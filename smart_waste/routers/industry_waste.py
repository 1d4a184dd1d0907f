from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from smart_waste.config.settings import settings
from smart_waste.db.models import DeclarationStatus
from smart_waste.middlewares.auth_middleware import (
    AuthState,
    get_current_user,
    require_admin,
    require_industry,
    require_user_type,
)
from smart_waste.schemas.industry_waste_schemas import (
    ReviewDeclarationRequest,
    SubmitDeclarationRequest,
)
from smart_waste.services.industry_waste_service import (
    IndustryWasteService,
    get_industry_waste_service,
)
from smart_waste.utils.responses import ResponseBuilder

industry_waste_router = APIRouter()

require_industry_or_admin = require_user_type("industry", "admin")


@industry_waste_router.post("/declare", status_code=status.HTTP_201_CREATED)
async def submit_declaration(
    request: Request,
    declaration_request: SubmitDeclarationRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    """
    File a monthly waste declaration.

    One declaration per industry and period; `saveAsDraft` keeps it as a
    draft instead of submitting it for review.
    """
    declaration = await industry_service.submit(current_user, declaration_request)

    return ResponseBuilder.success(
        request=request,
        data=declaration.model_dump(by_alias=True),
        message=(
            "Declaration saved as draft"
            if declaration_request.save_as_draft
            else "Declaration submitted successfully"
        ),
        status_code=status.HTTP_201_CREATED,
    )


@industry_waste_router.get("/declarations")
async def get_my_declarations(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_industry)],
    declaration_status: Optional[DeclarationStatus] = Query(None, alias="status"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    declarations, total = await industry_service.get_my_declarations(
        current_user.user_id,
        status=declaration_status,
        year=year,
        page=page,
        limit=limit,
    )

    return ResponseBuilder.paginated(
        request=request,
        data=[declaration.model_dump(by_alias=True) for declaration in declarations],
        page=page,
        per_page=limit,
        total=total,
        message=f"Retrieved {len(declarations)} declarations",
    )


@industry_waste_router.get("/stats")
async def get_declaration_stats(
    request: Request,
    current_user: Annotated[AuthState, Depends(require_industry_or_admin)],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    stats = await industry_service.get_stats(current_user)

    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(by_alias=True),
        message="Declaration statistics retrieved",
    )


@industry_waste_router.get("/certificate/{declaration_id}")
async def get_certificate(
    request: Request,
    declaration_id: Annotated[str, Path(description="Declaration ID")],
    current_user: Annotated[AuthState, Depends(get_current_user)],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    """Compliance certificate payload for an approved declaration"""
    certificate = await industry_service.generate_certificate(
        declaration_id, current_user
    )

    return ResponseBuilder.success(
        request=request,
        data=certificate.model_dump(by_alias=True),
        message="Certificate generated successfully",
    )


@industry_waste_router.get("/track/{tracking_id}")
async def track_declaration(
    request: Request,
    tracking_id: Annotated[str, Path(description="Declaration tracking ID")],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    """Public lookup of a declaration by tracking ID"""
    declaration = await industry_service.track_by_tracking_id(tracking_id)

    return ResponseBuilder.success(
        request=request,
        data=declaration.model_dump(by_alias=True),
        message="Declaration found",
    )


@industry_waste_router.put("/{declaration_id}/review")
async def review_declaration(
    request: Request,
    review_request: ReviewDeclarationRequest,
    declaration_id: Annotated[str, Path(description="Declaration ID")],
    current_user: Annotated[AuthState, Depends(require_admin)],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    declaration = await industry_service.review_declaration(
        declaration_id, review_request, current_user
    )

    return ResponseBuilder.success(
        request=request,
        data=declaration.model_dump(by_alias=True),
        message=f"Declaration marked {declaration.status.value}",
    )


@industry_waste_router.delete("/{declaration_id}")
async def delete_declaration(
    request: Request,
    declaration_id: Annotated[str, Path(description="Declaration ID")],
    current_user: Annotated[AuthState, Depends(require_industry)],
    industry_service: IndustryWasteService = Depends(get_industry_waste_service),
):
    """Delete a draft declaration"""
    await industry_service.delete_declaration(declaration_id, current_user)

    return ResponseBuilder.success(request=request, message="Declaration deleted")
