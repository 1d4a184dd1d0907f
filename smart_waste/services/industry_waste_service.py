from typing import List, Optional, Tuple

from fastapi import Depends
from sqlalchemy import case, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smart_waste.db.models import (
    DeclarationStatus,
    IndustryWaste,
    IndustryWasteCategory,
    IndustryWasteDocument,
    Pickup,
    QuantityUnit,
    User,
    UserType,
)
from smart_waste.db.session import get_sync_session
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.schemas.industry_waste_schemas import (
    CategoryTotal,
    CertificateResponse,
    DeclarationResponse,
    DeclarationStatsResponse,
    IndustrySummary,
    ReviewDeclarationRequest,
    SubmitDeclarationRequest,
    TrackedDeclarationResponse,
)
from smart_waste.utils.datetime_utils import naive_utc_now, to_naive_utc
from smart_waste.utils.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from smart_waste.utils.logging import get_logger

logger = get_logger()

REVIEW_STATUSES = (
    DeclarationStatus.UNDER_REVIEW,
    DeclarationStatus.APPROVED,
    DeclarationStatus.REJECTED,
)
PENDING_STATUSES = (DeclarationStatus.SUBMITTED, DeclarationStatus.UNDER_REVIEW)


class IndustryWasteService:
    """Monthly industry waste declarations, their review and certificates"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def _get_declaration(self, declaration_id: str) -> IndustryWaste:
        declaration = self.db.get(IndustryWaste, declaration_id)
        if not declaration:
            raise NotFoundError("Declaration not found", "DECLARATION_NOT_FOUND")
        return declaration

    async def _find_for_period(
        self, industry_id: str, month: int, year: int
    ) -> Optional[IndustryWaste]:
        return self.db.execute(
            select(IndustryWaste).where(
                IndustryWaste.industry_id == industry_id,
                IndustryWaste.period_month == month,
                IndustryWaste.period_year == year,
            )
        ).scalar_one_or_none()

    async def submit(
        self, current_user: AuthState, request: SubmitDeclarationRequest
    ) -> DeclarationResponse:
        """
        File a declaration for one month.

        The total is derived from the categories (kg converted to tons)
        unless the request supplies one.
        """
        if current_user.user_type != UserType.INDUSTRY.value:
            raise AuthorizationError(
                "Only industry users can submit waste declarations",
                "INDUSTRY_ONLY",
            )

        period = request.declaration_period
        if await self._find_for_period(current_user.user_id, period.month, period.year):
            raise ConflictError(
                "A declaration already exists for this period", "DUPLICATE_DECLARATION"
            )

        if request.linked_pickup_id:
            pickup = self.db.get(Pickup, request.linked_pickup_id)
            if not pickup or pickup.user_id != current_user.user_id:
                raise ValidationError(
                    "Linked pickup not found for this industry", "INVALID_LINKED_PICKUP"
                )

        now = naive_utc_now()
        compliance = request.compliance
        declaration = IndustryWaste(
            industry_id=current_user.user_id,
            period_month=period.month,
            period_year=period.year,
            linked_pickup_id=request.linked_pickup_id,
            status=(
                DeclarationStatus.DRAFT
                if request.save_as_draft
                else DeclarationStatus.SUBMITTED
            ),
            submitted_at=None if request.save_as_draft else now,
        )
        if compliance:
            declaration.is_pollution_cert_valid = compliance.is_pollution_cert_valid
            declaration.certificate_number = compliance.certificate_number
            declaration.certificate_expiry = (
                to_naive_utc(compliance.certificate_expiry)
                if compliance.certificate_expiry
                else None
            )
            declaration.is_properly_segregated = compliance.is_properly_segregated
        if request.total_waste_generated:
            declaration.total_waste_amount = request.total_waste_generated.amount
            declaration.total_waste_unit = request.total_waste_generated.unit.value

        declaration.categories = [
            IndustryWasteCategory(
                category=entry.category,
                quantity_amount=entry.quantity.amount,
                quantity_unit=entry.quantity.unit,
                description=entry.description,
                disposal_method=entry.disposal_method,
            )
            for entry in request.waste_categories
        ]
        declaration.documents = [
            IndustryWasteDocument(
                name=document.name,
                url=document.url,
                type=document.type,
                uploaded_at=(
                    to_naive_utc(document.uploaded_at) if document.uploaded_at else now
                ),
            )
            for document in request.documents
        ]

        self.db.add(declaration)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "A declaration already exists for this period", "DUPLICATE_DECLARATION"
            )
        self.db.refresh(declaration)

        logger.info(
            f"Industry {current_user.user_id} filed declaration {declaration.tracking_id} "
            f"for {period.month:02d}/{period.year} ({declaration.status.value})"
        )
        return DeclarationResponse.from_declaration(declaration)

    async def get_my_declarations(
        self,
        industry_id: str,
        status: Optional[DeclarationStatus] = None,
        year: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[DeclarationResponse], int]:
        conditions = [IndustryWaste.industry_id == industry_id]
        if status:
            conditions.append(IndustryWaste.status == status)
        if year:
            conditions.append(IndustryWaste.period_year == year)

        total = self.db.execute(
            select(func.count(IndustryWaste.id)).where(*conditions)
        ).scalar_one()
        declarations = (
            self.db.execute(
                select(IndustryWaste)
                .where(*conditions)
                .order_by(
                    desc(IndustryWaste.period_year), desc(IndustryWaste.period_month)
                )
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [DeclarationResponse.from_declaration(d) for d in declarations], total

    async def track_by_tracking_id(self, tracking_id: str) -> TrackedDeclarationResponse:
        """Public lookup of a declaration by its IW tracking ID"""
        declaration = self.db.execute(
            select(IndustryWaste).where(IndustryWaste.tracking_id == tracking_id)
        ).scalar_one_or_none()
        if not declaration:
            raise NotFoundError(
                "Declaration not found with this tracking ID", "DECLARATION_NOT_FOUND"
            )

        industry = declaration.industry
        response = DeclarationResponse.from_declaration(declaration)
        return TrackedDeclarationResponse(
            **response.model_dump(),
            industry=IndustrySummary(
                company_name=industry.company_name if industry else None,
                industry_type=(
                    industry.industry_type.value
                    if industry and industry.industry_type
                    else None
                ),
            ),
        )

    async def get_stats(self, current_user: AuthState) -> DeclarationStatsResponse:
        scope = (
            []
            if current_user.is_admin
            else [IndustryWaste.industry_id == current_user.user_id]
        )

        status_breakdown = {
            status.value: count
            for status, count in self.db.execute(
                select(IndustryWaste.status, func.count(IndustryWaste.id))
                .where(*scope)
                .group_by(IndustryWaste.status)
            ).all()
        }

        # Explicit totals may be recorded in kg
        total_in_tons = case(
            (
                IndustryWaste.total_waste_unit == QuantityUnit.KG.value,
                IndustryWaste.total_waste_amount / 1000,
            ),
            else_=IndustryWaste.total_waste_amount,
        )
        this_year = self.db.execute(
            select(func.coalesce(func.sum(total_in_tons), 0)).where(
                *scope, IndustryWaste.period_year == naive_utc_now().year
            )
        ).scalar_one()

        quantity_in_tons = case(
            (
                IndustryWasteCategory.quantity_unit == QuantityUnit.KG,
                IndustryWasteCategory.quantity_amount / 1000,
            ),
            else_=IndustryWasteCategory.quantity_amount,
        )
        category_breakdown = [
            CategoryTotal(category=category.value, total_quantity=round(float(total), 2))
            for category, total in self.db.execute(
                select(IndustryWasteCategory.category, func.sum(quantity_in_tons))
                .join(IndustryWaste)
                .where(*scope)
                .group_by(IndustryWasteCategory.category)
                .order_by(desc(func.sum(quantity_in_tons)))
            ).all()
        ]

        return DeclarationStatsResponse(
            total_declarations=sum(status_breakdown.values()),
            status_breakdown=status_breakdown,
            total_waste_this_year=round(float(this_year or 0), 2),
            category_breakdown=category_breakdown,
            pending_approvals=sum(
                status_breakdown.get(status.value, 0) for status in PENDING_STATUSES
            ),
        )

    async def generate_certificate(
        self, declaration_id: str, current_user: AuthState
    ) -> CertificateResponse:
        declaration = await self._get_declaration(declaration_id)
        if declaration.industry_id != current_user.user_id:
            raise AuthorizationError(
                "Not authorized to access this certificate", "NOT_DECLARATION_OWNER"
            )
        if declaration.status != DeclarationStatus.APPROVED:
            raise InvalidStateError(
                "Certificate is only available for approved declarations",
                "DECLARATION_NOT_APPROVED",
            )

        response = DeclarationResponse.from_declaration(declaration)
        industry = declaration.industry
        return CertificateResponse(
            tracking_id=declaration.tracking_id,
            company_name=industry.company_name if industry else None,
            industry_type=(
                industry.industry_type.value
                if industry and industry.industry_type
                else None
            ),
            declaration_period=response.declaration_period,
            total_waste=response.total_waste_generated,
            waste_categories=response.waste_categories,
            compliance=response.compliance,
            approved_at=declaration.approved_at,
            generated_at=naive_utc_now(),
        )

    async def review_declaration(
        self, declaration_id: str, request: ReviewDeclarationRequest, reviewer: AuthState
    ) -> DeclarationResponse:
        if request.status not in REVIEW_STATUSES:
            raise ValidationError(
                "Review status must be Under Review, Approved or Rejected",
                "INVALID_REVIEW_STATUS",
            )
        declaration = await self._get_declaration(declaration_id)
        if declaration.status == DeclarationStatus.DRAFT:
            raise InvalidStateError(
                "Draft declarations cannot be reviewed", "DECLARATION_NOT_SUBMITTED"
            )

        now = naive_utc_now()
        declaration.status = request.status
        declaration.reviewed_by = reviewer.user_id
        declaration.reviewed_at = now
        if request.review_notes is not None:
            declaration.review_notes = request.review_notes
        if request.status == DeclarationStatus.APPROVED:
            declaration.approved_at = now
        self.db.commit()
        self.db.refresh(declaration)

        logger.info(
            f"Declaration {declaration.tracking_id} reviewed as {request.status.value} "
            f"by {reviewer.user_id}"
        )
        return DeclarationResponse.from_declaration(declaration)

    async def delete_declaration(self, declaration_id: str, current_user: AuthState) -> None:
        declaration = await self._get_declaration(declaration_id)
        if declaration.industry_id != current_user.user_id:
            raise AuthorizationError(
                "Not authorized to delete this declaration", "NOT_DECLARATION_OWNER"
            )
        if declaration.status != DeclarationStatus.DRAFT:
            raise InvalidStateError(
                "Only draft declarations can be deleted", "DECLARATION_NOT_DRAFT"
            )

        self.db.delete(declaration)
        self.db.commit()
        logger.info(f"Deleted draft declaration {declaration_id}")


def get_industry_waste_service(
    db: Session = Depends(get_sync_session),
) -> IndustryWasteService:
    return IndustryWasteService(db)
