import re
import pytest
from datetime import datetime

from smart_waste.db.models import (
    HazardLevel,
    ManifestWasteType,
    TrackingDisposalMethod,
    TrackingStatus,
    UserType,
)
from smart_waste.schemas.waste_tracking_schemas import (
    CreateTrackingRequest,
    LocationSchema,
    UpdateTrackingStatusRequest,
    WasteManifest,
)
from smart_waste.services.waste_tracking_service import WasteTrackingService
from smart_waste.utils.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)

from conftest import actor

TRACKING_ID_PATTERN = re.compile(r"^WM-\d{4}-\d{6}$")


@pytest.fixture
def open_tracking(db_session, industry, make_pickup):
    """Open a tracking record on a fresh pickup owned by the industry fixture."""

    async def _open(service=None, **kwargs):
        service = service or WasteTrackingService(db_session)
        pickup = make_pickup(industry)
        fields = dict(
            manifest_waste_type=ManifestWasteType.HAZARDOUS,
            quantity_amount=2.5,
            quantity_unit="tons",
            hazard_level=HazardLevel.MEDIUM,
        )
        fields.update(kwargs)
        return await service.open_tracking(pickup=pickup, industry=industry, **fields)

    return _open


class TestTrackingIds:
    """Test sequential tracking ID generation."""

    @pytest.mark.asyncio
    async def test_first_id_of_the_year(self, db_session):
        service = WasteTrackingService(db_session)

        tracking_id = await service.generate_tracking_id(now=datetime(2025, 3, 1))

        assert tracking_id == "WM-2025-000001"

    @pytest.mark.asyncio
    async def test_ids_increase(self, db_session, open_tracking):
        first = await open_tracking()
        second = await open_tracking()

        assert TRACKING_ID_PATTERN.match(first.tracking_id)
        assert TRACKING_ID_PATTERN.match(second.tracking_id)
        assert second.tracking_id > first.tracking_id
        assert int(second.tracking_id[-6:]) == int(first.tracking_id[-6:]) + 1

    @pytest.mark.asyncio
    async def test_sequence_restarts_each_year(self, db_session, open_tracking):
        existing = await open_tracking()
        year = int(existing.tracking_id[3:7])
        service = WasteTrackingService(db_session)

        next_year_id = await service.generate_tracking_id(now=datetime(year + 1, 1, 1))

        assert next_year_id == f"WM-{year + 1}-000001"

    @pytest.mark.asyncio
    async def test_duplicate_id_is_a_conflict(self, db_session, open_tracking):
        existing = await open_tracking()
        service = WasteTrackingService(db_session)

        async def stale_id(now=None):
            return existing.tracking_id

        service.generate_tracking_id = stale_id

        with pytest.raises(ConflictError):
            await open_tracking(service=service)


class TestTrackingCreation:
    """Test opening a tracking record for an existing pickup."""

    @pytest.mark.asyncio
    async def test_open_tracking_seeds_history(self, db_session, industry, open_tracking):
        tracking = await open_tracking()

        assert tracking.status == TrackingStatus.SCHEDULED
        assert len(tracking.status_history) == 1
        first = tracking.status_history[0]
        assert first.status == TrackingStatus.SCHEDULED
        assert first.updated_by == industry.company_name
        assert tracking.collection_scheduled_date is not None

    @pytest.mark.asyncio
    async def test_create_tracking_for_own_pickup(self, db_session, industry, make_pickup):
        pickup = make_pickup(industry)
        service = WasteTrackingService(db_session)

        response = await service.create_tracking(
            actor(industry),
            CreateTrackingRequest(
                pickup_id=pickup.id,
                waste_manifest=WasteManifest(
                    waste_type=ManifestWasteType.CHEMICAL,
                    quantity={"amount": 1.2, "unit": "tons"},
                    description="Acid drums",
                    hazard_level=HazardLevel.HIGH,
                ),
            ),
        )

        assert response.pickup_id == pickup.id
        assert response.industry_name == industry.company_name
        assert response.waste_manifest.waste_type == ManifestWasteType.CHEMICAL
        assert response.waste_manifest.quantity.amount == 1.2
        assert [entry.status for entry in response.status_history] == [
            TrackingStatus.SCHEDULED
        ]

    @pytest.mark.asyncio
    async def test_create_tracking_for_foreign_pickup(
        self, db_session, industry, citizen, make_pickup
    ):
        pickup = make_pickup(citizen)
        service = WasteTrackingService(db_session)

        with pytest.raises(AuthorizationError):
            await service.create_tracking(
                actor(industry),
                CreateTrackingRequest(
                    pickup_id=pickup.id,
                    waste_manifest=WasteManifest(waste_type=ManifestWasteType.OTHER),
                ),
            )

    @pytest.mark.asyncio
    async def test_second_tracking_for_pickup_is_rejected(
        self, db_session, industry, make_pickup
    ):
        pickup = make_pickup(industry)
        service = WasteTrackingService(db_session)
        request = CreateTrackingRequest(
            pickup_id=pickup.id,
            waste_manifest=WasteManifest(waste_type=ManifestWasteType.METAL),
        )
        await service.create_tracking(actor(industry), request)

        with pytest.raises(ConflictError):
            await service.create_tracking(actor(industry), request)


class TestTrackingStatusUpdates:
    """Test the status ledger."""

    @pytest.mark.asyncio
    async def test_history_is_append_only(self, db_session, open_tracking, pickup_agent):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session)

        await service.update_status(
            tracking.tracking_id,
            UpdateTrackingStatusRequest(
                status=TrackingStatus.COLLECTED,
                collector_name="Ravi",
                vehicle_number="KA-01-1234",
                location=LocationSchema(latitude=12.97, longitude=77.59),
            ),
            actor(pickup_agent),
        )
        response = await service.update_status(
            tracking.tracking_id,
            UpdateTrackingStatusRequest(
                status=TrackingStatus.DISPOSED,
                facility_name="North Treatment Plant",
                disposal_method=TrackingDisposalMethod.TREATMENT,
            ),
            actor(pickup_agent),
        )

        assert [entry.status for entry in response.status_history] == [
            TrackingStatus.SCHEDULED,
            TrackingStatus.COLLECTED,
            TrackingStatus.DISPOSED,
        ]
        assert response.status == response.status_history[-1].status
        assert response.status_history[1].updated_by == pickup_agent.name
        assert response.status_history[1].location.latitude == 12.97
        assert response.collection.collector_name == "Ravi"
        assert response.collection.collected_date is not None
        assert response.disposal.facility_name == "North Treatment Plant"
        assert response.disposal.disposal_date is not None

    @pytest.mark.asyncio
    async def test_permissive_mode_allows_any_move(self, db_session, open_tracking, admin):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session, strict_transitions=False)

        response = await service.update_status(
            tracking.tracking_id,
            UpdateTrackingStatusRequest(status=TrackingStatus.DISPOSED),
            actor(admin),
        )

        assert response.status == TrackingStatus.DISPOSED

    @pytest.mark.asyncio
    async def test_strict_mode_rejects_skipped_steps(self, db_session, open_tracking, admin):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session, strict_transitions=True)

        with pytest.raises(InvalidStateError):
            await service.update_status(
                tracking.tracking_id,
                UpdateTrackingStatusRequest(status=TrackingStatus.DISPOSED),
                actor(admin),
            )

        db_session.refresh(tracking)
        assert tracking.status == TrackingStatus.SCHEDULED
        assert len(tracking.status_history) == 1

    @pytest.mark.asyncio
    async def test_strict_mode_allows_cancel_from_open_state(
        self, db_session, open_tracking, admin
    ):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session, strict_transitions=True)

        response = await service.update_status(
            tracking.tracking_id,
            UpdateTrackingStatusRequest(status=TrackingStatus.CANCELLED),
            actor(admin),
        )

        assert response.status == TrackingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_unknown_tracking_id(self, db_session, admin):
        service = WasteTrackingService(db_session)

        with pytest.raises(NotFoundError):
            await service.update_status(
                "WM-1999-000001",
                UpdateTrackingStatusRequest(status=TrackingStatus.COLLECTED),
                actor(admin),
            )


class TestTrackingQueries:
    """Test listing, deletion and statistics."""

    @pytest.mark.asyncio
    async def test_public_lookup(self, db_session, open_tracking):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session)

        response = await service.get_by_tracking_id(tracking.tracking_id)

        assert response.id == tracking.id

    @pytest.mark.asyncio
    async def test_my_trackings_filters_by_status(self, db_session, industry, open_tracking, admin):
        first = await open_tracking()
        await open_tracking()
        service = WasteTrackingService(db_session)
        await service.update_status(
            first.tracking_id,
            UpdateTrackingStatusRequest(status=TrackingStatus.COLLECTED),
            actor(admin),
        )

        collected, total = await service.get_my_trackings(
            industry.id, status=TrackingStatus.COLLECTED
        )

        assert total == 1
        assert collected[0].tracking_id == first.tracking_id

    @pytest.mark.asyncio
    async def test_delete_tracking(self, db_session, open_tracking):
        tracking = await open_tracking()
        service = WasteTrackingService(db_session)

        await service.delete_tracking(tracking.tracking_id)

        with pytest.raises(NotFoundError):
            await service.get_by_tracking_id(tracking.tracking_id)

    @pytest.mark.asyncio
    async def test_stats(self, db_session, industry, open_tracking, admin):
        first = await open_tracking(quantity_amount=3)
        await open_tracking(quantity_amount=1)
        await open_tracking(quantity_amount=4)
        service = WasteTrackingService(db_session)
        await service.update_status(
            first.tracking_id,
            UpdateTrackingStatusRequest(status=TrackingStatus.DISPOSED),
            actor(admin),
        )

        stats = await service.get_stats(actor(industry))

        assert stats.total == 3
        assert stats.scheduled == 2
        assert stats.disposed == 1
        assert stats.in_transit == 0
        assert stats.total_waste_disposed == 3

    @pytest.mark.asyncio
    async def test_disposed_total_converts_kg_to_tons(
        self, db_session, industry, open_tracking, admin
    ):
        in_kg = await open_tracking(quantity_amount=500, quantity_unit="kg")
        in_tons = await open_tracking(quantity_amount=2, quantity_unit="tons")
        service = WasteTrackingService(db_session)
        for tracking in (in_kg, in_tons):
            await service.update_status(
                tracking.tracking_id,
                UpdateTrackingStatusRequest(status=TrackingStatus.DISPOSED),
                actor(admin),
            )

        stats = await service.get_stats(actor(industry))

        assert stats.disposed == 2
        assert stats.total_waste_disposed == 2.5

    @pytest.mark.asyncio
    async def test_stats_are_scoped_to_industry(self, db_session, make_user, open_tracking):
        await open_tracking()
        other_industry = make_user(UserType.INDUSTRY)
        service = WasteTrackingService(db_session)

        stats = await service.get_stats(actor(other_industry))

        assert stats.total == 0
