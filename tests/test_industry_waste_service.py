import re
import pytest
from pydantic import ValidationError as PydanticValidationError

from smart_waste.db.models import (
    DeclarationCategory,
    DeclarationStatus,
    QuantityUnit,
)
from smart_waste.schemas.industry_waste_schemas import (
    ReviewDeclarationRequest,
    SubmitDeclarationRequest,
)
from smart_waste.services.industry_waste_service import IndustryWasteService
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

from conftest import actor

THIS_YEAR = naive_utc_now().year


def declaration_request(month: int = 1, year: int = THIS_YEAR, **overrides):
    payload = {
        "declarationPeriod": {"month": month, "year": year},
        "wasteCategories": [
            {"category": "Recyclable", "quantity": {"amount": 500, "unit": "kg"}},
            {"category": "Hazardous", "quantity": {"amount": 2, "unit": "tons"}},
        ],
        "compliance": {"isPollutionCertValid": True, "certificateNumber": "PCB-42"},
    }
    payload.update(overrides)
    return SubmitDeclarationRequest.model_validate(payload)


class TestSubmitDeclaration:
    """Test filing monthly declarations."""

    @pytest.mark.asyncio
    async def test_total_is_derived_in_tons(self, db_session, industry):
        service = IndustryWasteService(db_session)

        declaration = await service.submit(actor(industry), declaration_request())

        assert declaration.total_waste_generated.amount == 2.5
        assert declaration.total_waste_generated.unit == QuantityUnit.TONS
        assert declaration.status == DeclarationStatus.SUBMITTED
        assert declaration.submitted_at is not None
        assert re.match(r"^IW\d{6}-[A-Z0-9]{6}$", declaration.tracking_id)
        assert declaration.compliance.certificate_number == "PCB-42"

    @pytest.mark.asyncio
    async def test_explicit_total_is_kept(self, db_session, industry):
        service = IndustryWasteService(db_session)

        declaration = await service.submit(
            actor(industry),
            declaration_request(totalWasteGenerated={"amount": 9, "unit": "tons"}),
        )

        assert declaration.total_waste_generated.amount == 9

    @pytest.mark.asyncio
    async def test_save_as_draft(self, db_session, industry):
        service = IndustryWasteService(db_session)

        declaration = await service.submit(
            actor(industry), declaration_request(saveAsDraft=True)
        )

        assert declaration.status == DeclarationStatus.DRAFT
        assert declaration.submitted_at is None

    @pytest.mark.asyncio
    async def test_duplicate_period_is_rejected(self, db_session, industry):
        service = IndustryWasteService(db_session)
        await service.submit(actor(industry), declaration_request(month=3))

        with pytest.raises(ConflictError):
            await service.submit(actor(industry), declaration_request(month=3))

    @pytest.mark.asyncio
    async def test_same_period_for_other_industry(self, db_session, industry, make_user):
        service = IndustryWasteService(db_session)
        await service.submit(actor(industry), declaration_request(month=3))

        other = make_user(industry.user_type)
        declaration = await service.submit(actor(other), declaration_request(month=3))

        assert declaration.industry_id == other.id

    @pytest.mark.asyncio
    async def test_citizen_cannot_declare(self, db_session, citizen):
        service = IndustryWasteService(db_session)

        with pytest.raises(AuthorizationError):
            await service.submit(actor(citizen), declaration_request())

    @pytest.mark.asyncio
    async def test_linked_pickup_must_be_own(self, db_session, industry, citizen, make_pickup):
        service = IndustryWasteService(db_session)
        pickup = make_pickup(citizen)

        with pytest.raises(ValidationError):
            await service.submit(
                actor(industry), declaration_request(linkedPickupId=pickup.id)
            )

    def test_categories_are_required(self):
        with pytest.raises(PydanticValidationError):
            SubmitDeclarationRequest.model_validate(
                {"declarationPeriod": {"month": 1, "year": THIS_YEAR}, "wasteCategories": []}
            )


class TestDeclarationLifecycle:
    """Test review, certificates and deletion."""

    @pytest.mark.asyncio
    async def test_certificate_requires_approval(self, db_session, industry):
        service = IndustryWasteService(db_session)
        declaration = await service.submit(actor(industry), declaration_request())

        with pytest.raises(InvalidStateError):
            await service.generate_certificate(declaration.id, actor(industry))

    @pytest.mark.asyncio
    async def test_approved_declaration_certificate(self, db_session, industry, admin):
        service = IndustryWasteService(db_session)
        declaration = await service.submit(actor(industry), declaration_request())

        reviewed = await service.review_declaration(
            declaration.id,
            ReviewDeclarationRequest(status=DeclarationStatus.APPROVED, review_notes="OK"),
            actor(admin),
        )
        certificate = await service.generate_certificate(declaration.id, actor(industry))

        assert reviewed.status == DeclarationStatus.APPROVED
        assert reviewed.reviewed_by == admin.id
        assert reviewed.approved_at is not None
        assert certificate.tracking_id == declaration.tracking_id
        assert certificate.company_name == industry.company_name
        assert certificate.total_waste.amount == 2.5
        assert len(certificate.waste_categories) == 2

    @pytest.mark.asyncio
    async def test_certificate_for_other_industry_is_forbidden(
        self, db_session, industry, admin, make_user
    ):
        service = IndustryWasteService(db_session)
        declaration = await service.submit(actor(industry), declaration_request())
        await service.review_declaration(
            declaration.id,
            ReviewDeclarationRequest(status=DeclarationStatus.APPROVED),
            actor(admin),
        )

        with pytest.raises(AuthorizationError):
            await service.generate_certificate(
                declaration.id, actor(make_user(industry.user_type))
            )
        with pytest.raises(AuthorizationError):
            await service.generate_certificate(declaration.id, actor(admin))

    @pytest.mark.asyncio
    async def test_review_rejects_draft(self, db_session, industry, admin):
        service = IndustryWasteService(db_session)
        draft = await service.submit(actor(industry), declaration_request(saveAsDraft=True))

        with pytest.raises(InvalidStateError):
            await service.review_declaration(
                draft.id,
                ReviewDeclarationRequest(status=DeclarationStatus.APPROVED),
                actor(admin),
            )

    @pytest.mark.asyncio
    async def test_review_status_must_be_a_decision(self, db_session, industry, admin):
        service = IndustryWasteService(db_session)
        declaration = await service.submit(actor(industry), declaration_request())

        with pytest.raises(ValidationError):
            await service.review_declaration(
                declaration.id,
                ReviewDeclarationRequest(status=DeclarationStatus.DRAFT),
                actor(admin),
            )

    @pytest.mark.asyncio
    async def test_only_drafts_can_be_deleted(self, db_session, industry):
        service = IndustryWasteService(db_session)
        submitted = await service.submit(actor(industry), declaration_request(month=1))
        draft = await service.submit(
            actor(industry), declaration_request(month=2, saveAsDraft=True)
        )

        with pytest.raises(InvalidStateError):
            await service.delete_declaration(submitted.id, actor(industry))

        await service.delete_declaration(draft.id, actor(industry))
        declarations, total = await service.get_my_declarations(industry.id)
        assert total == 1
        assert declarations[0].id == submitted.id


class TestDeclarationQueries:
    """Test listing, public tracking and statistics."""

    @pytest.mark.asyncio
    async def test_declarations_newest_period_first(self, db_session, industry):
        service = IndustryWasteService(db_session)
        await service.submit(actor(industry), declaration_request(month=2))
        await service.submit(actor(industry), declaration_request(month=11, year=THIS_YEAR - 1))
        await service.submit(actor(industry), declaration_request(month=5))

        declarations, total = await service.get_my_declarations(industry.id)

        assert total == 3
        assert [
            (d.declaration_period.year, d.declaration_period.month) for d in declarations
        ] == [(THIS_YEAR, 5), (THIS_YEAR, 2), (THIS_YEAR - 1, 11)]

    @pytest.mark.asyncio
    async def test_track_by_tracking_id(self, db_session, industry):
        service = IndustryWasteService(db_session)
        declaration = await service.submit(actor(industry), declaration_request())

        tracked = await service.track_by_tracking_id(declaration.tracking_id)

        assert tracked.id == declaration.id
        assert tracked.industry.company_name == industry.company_name
        assert tracked.industry.industry_type == "Manufacturing"

    @pytest.mark.asyncio
    async def test_track_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            await IndustryWasteService(db_session).track_by_tracking_id("IW202501-NOPE00")

    @pytest.mark.asyncio
    async def test_stats(self, db_session, industry, admin):
        service = IndustryWasteService(db_session)
        first = await service.submit(actor(industry), declaration_request(month=1))
        await service.submit(actor(industry), declaration_request(month=2))
        await service.submit(
            actor(industry),
            declaration_request(
                month=3,
                saveAsDraft=True,
                totalWasteGenerated={"amount": 1000, "unit": "kg"},
            ),
        )
        await service.review_declaration(
            first.id,
            ReviewDeclarationRequest(status=DeclarationStatus.APPROVED),
            actor(admin),
        )

        stats = await service.get_stats(actor(industry))

        assert stats.total_declarations == 3
        assert stats.status_breakdown == {"Approved": 1, "Submitted": 1, "Draft": 1}
        assert stats.total_waste_this_year == 6.0
        assert stats.pending_approvals == 1
        breakdown = {entry.category: entry.total_quantity for entry in stats.category_breakdown}
        assert breakdown == {
            DeclarationCategory.HAZARDOUS.value: 6.0,
            DeclarationCategory.RECYCLABLE.value: 1.5,
        }
