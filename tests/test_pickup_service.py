import pytest
from datetime import timedelta

from sqlalchemy import select

from smart_waste.db.models import (
    CancelledBy,
    HazardLevel,
    ManifestWasteType,
    Notification,
    NotificationType,
    Pickup,
    PickupStatus,
    PickupWasteType,
    PointTransaction,
    TimeSlot,
    TrackingStatus,
    WasteTracking,
)
from smart_waste.schemas.pickup_schemas import (
    CompletePickupRequest,
    RatePickupRequest,
    SchedulePickupRequest,
    UpdatePickupStatusRequest,
)
from smart_waste.services.pickup_service import (
    PickupService,
    completion_points,
    scheduling_points,
)
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import (
    AuthorizationError,
    InvalidStateError,
    ValidationError,
)

from conftest import actor


def schedule_request(**overrides) -> SchedulePickupRequest:
    fields = dict(
        waste_type=PickupWasteType.RECYCLABLE,
        pickup_date=naive_utc_now() + timedelta(days=1),
        time_slot=TimeSlot.MORNING,
        address="12 Green Street",
        estimated_weight=4,
    )
    fields.update(overrides)
    return SchedulePickupRequest(**fields)


class TestPointRules:
    """Test the pure point formulas."""

    def test_scheduling_points_are_half_base_rounded_down(self):
        assert scheduling_points(PickupWasteType.BIODEGRADABLE) == 5
        assert scheduling_points(PickupWasteType.RECYCLABLE) == 7
        assert scheduling_points(PickupWasteType.E_WASTE) == 10
        assert scheduling_points(PickupWasteType.HAZARDOUS) == 12

    def test_completion_points_use_actual_weight_first(self):
        assert completion_points(PickupWasteType.HAZARDOUS, 12.7, 3) == 37

    def test_completion_points_fall_back_to_estimate(self):
        assert completion_points(PickupWasteType.E_WASTE, None, 5.9) == 25

    def test_completion_points_without_weights(self):
        assert completion_points(PickupWasteType.BIODEGRADABLE, None, 0) == 10


class TestSchedulePickup:
    """Test scheduling, including the industry tracking side effect."""

    @pytest.mark.asyncio
    async def test_schedule_credits_half_points(self, db_session, citizen):
        service = PickupService(db_session)

        pickup, tracking_id = await service.schedule(actor(citizen), schedule_request())

        db_session.refresh(citizen)
        assert pickup.status == PickupStatus.SCHEDULED
        assert pickup.points_awarded == 7
        assert citizen.points == 7
        assert len(pickup.verification_code) == 6
        assert tracking_id is None

        ledger = db_session.execute(select(PointTransaction)).scalars().all()
        assert [(t.delta, t.reason) for t in ledger] == [(7, "pickup_scheduled")]

    @pytest.mark.asyncio
    async def test_schedule_creates_notification(self, db_session, citizen):
        service = PickupService(db_session)

        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        notification = db_session.execute(select(Notification)).scalar_one()
        assert notification.type == NotificationType.PICKUP_SCHEDULED
        assert notification.related_pickup_id == pickup.id

    @pytest.mark.asyncio
    async def test_schedule_rejects_past_date(self, db_session, citizen):
        service = PickupService(db_session)

        with pytest.raises(ValidationError):
            await service.schedule(
                actor(citizen),
                schedule_request(pickup_date=naive_utc_now() - timedelta(days=2)),
            )

    @pytest.mark.asyncio
    async def test_schedule_defaults_contact_phone(self, db_session, citizen):
        service = PickupService(db_session)

        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        assert pickup.contact_phone == citizen.phone

    @pytest.mark.asyncio
    async def test_industry_schedule_opens_tracking(self, db_session, industry):
        service = PickupService(db_session)

        pickup, tracking_id = await service.schedule(
            actor(industry),
            schedule_request(waste_type=PickupWasteType.HAZARDOUS, estimated_weight=40),
        )

        assert tracking_id is not None
        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        assert tracking.pickup_id == pickup.id
        assert tracking.manifest_waste_type == ManifestWasteType.HAZARDOUS
        assert tracking.manifest_hazard_level == HazardLevel.HIGH
        assert tracking.manifest_quantity_amount == 40
        assert tracking.manifest_quantity_unit == "kg"
        assert tracking.status == TrackingStatus.SCHEDULED
        assert tracking.industry_name == industry.company_name

    @pytest.mark.asyncio
    async def test_industry_schedule_honours_manifest_override(
        self, db_session, industry
    ):
        service = PickupService(db_session)

        _, tracking_id = await service.schedule(
            actor(industry),
            schedule_request(
                manifest_waste_type=ManifestWasteType.CHEMICAL,
                hazard_level=HazardLevel.EXTREME,
                waste_description="Spent solvents",
            ),
        )

        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        assert tracking.manifest_waste_type == ManifestWasteType.CHEMICAL
        assert tracking.manifest_hazard_level == HazardLevel.EXTREME
        assert tracking.manifest_description == "Spent solvents"

    @pytest.mark.asyncio
    async def test_tracking_failure_does_not_fail_schedule(
        self, db_session, industry, monkeypatch
    ):
        service = PickupService(db_session)

        async def broken_open_tracking(*args, **kwargs):
            raise RuntimeError("tracking store unavailable")

        monkeypatch.setattr(service.tracking, "open_tracking", broken_open_tracking)

        pickup, tracking_id = await service.schedule(
            actor(industry), schedule_request()
        )

        assert tracking_id is None
        assert pickup.status == PickupStatus.SCHEDULED
        db_session.refresh(industry)
        assert industry.points == 7


class TestCancelPickup:
    """Test cancellation and point reversal."""

    @pytest.mark.asyncio
    async def test_schedule_then_cancel_nets_zero(self, db_session, citizen):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        cancelled, tracking_updated = await service.cancel(
            actor(citizen), pickup.id, None
        )

        db_session.refresh(citizen)
        assert cancelled.status == PickupStatus.CANCELLED
        assert cancelled.cancellation_reason == "Cancelled by user"
        assert cancelled.cancelled_by == CancelledBy.USER
        assert cancelled.cancelled_at is not None
        assert citizen.points == 0
        assert tracking_updated is False

        deltas = [
            t.delta
            for t in db_session.execute(
                select(PointTransaction).order_by(PointTransaction.created_at)
            ).scalars()
        ]
        assert deltas == [7, -7]

    @pytest.mark.asyncio
    async def test_cancel_by_non_owner_is_forbidden(self, db_session, citizen, make_user):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        stranger = make_user()

        with pytest.raises(AuthorizationError):
            await service.cancel(actor(stranger), pickup.id, "not mine")

    @pytest.mark.asyncio
    async def test_admin_cancel_reverses_owner_points(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        cancelled, _ = await service.cancel(actor(admin), pickup.id, "Route closed")

        db_session.refresh(citizen)
        assert cancelled.cancelled_by == CancelledBy.ADMIN
        assert cancelled.cancellation_reason == "Route closed"
        assert citizen.points == 0

    @pytest.mark.asyncio
    async def test_cancel_mirrors_onto_tracking(self, db_session, industry):
        service = PickupService(db_session)
        pickup, tracking_id = await service.schedule(actor(industry), schedule_request())

        _, tracking_updated = await service.cancel(actor(industry), pickup.id, "No longer needed")

        assert tracking_updated is True
        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        assert tracking.status == TrackingStatus.CANCELLED
        assert tracking.status_history[-1].status == TrackingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancelling_twice_is_rejected(self, db_session, citizen):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        await service.cancel(actor(citizen), pickup.id, None)

        with pytest.raises(InvalidStateError):
            await service.cancel(actor(citizen), pickup.id, None)

        db_session.refresh(citizen)
        assert citizen.points == 0


class TestCompletePickup:
    """Test completion, points and terminal states."""

    @pytest.mark.asyncio
    async def test_hazardous_completion_points(self, db_session, citizen, pickup_agent):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(
            actor(citizen), schedule_request(waste_type=PickupWasteType.HAZARDOUS)
        )

        completed, points, _ = await service.complete(
            pickup.id, CompletePickupRequest(actual_weight=12.7), actor(pickup_agent)
        )

        db_session.refresh(citizen)
        assert points == 37
        assert completed.points_awarded == 37
        assert completed.status == PickupStatus.COMPLETED
        assert completed.actual_weight == 12.7
        assert completed.completed_at is not None
        assert completed.assigned_collector_id == pickup_agent.id
        # Scheduling half points are kept
        assert citizen.points == 12 + 37

    @pytest.mark.asyncio
    async def test_complete_twice_is_rejected(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        await service.complete(pickup.id, CompletePickupRequest(), actor(admin))
        db_session.refresh(citizen)
        balance = citizen.points

        with pytest.raises(InvalidStateError):
            await service.complete(pickup.id, CompletePickupRequest(), actor(admin))

        db_session.refresh(citizen)
        assert citizen.points == balance

    @pytest.mark.asyncio
    async def test_complete_cancelled_is_rejected(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        await service.cancel(actor(citizen), pickup.id, None)

        with pytest.raises(InvalidStateError):
            await service.complete(pickup.id, CompletePickupRequest(), actor(admin))

    @pytest.mark.asyncio
    async def test_cancel_completed_is_rejected(self, db_session, industry, admin):
        service = PickupService(db_session)
        pickup, tracking_id = await service.schedule(actor(industry), schedule_request())
        await service.complete(
            pickup.id, CompletePickupRequest(actual_weight=4), actor(admin)
        )
        completed = db_session.get(Pickup, pickup.id)
        points_awarded = completed.points_awarded
        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        history_length = len(tracking.status_history)
        db_session.refresh(industry)
        balance = industry.points

        with pytest.raises(InvalidStateError):
            await service.cancel(actor(industry), pickup.id, None)

        db_session.refresh(completed)
        db_session.refresh(tracking)
        assert completed.status == PickupStatus.COMPLETED
        assert completed.points_awarded == points_awarded
        assert len(tracking.status_history) == history_length
        assert tracking.status == TrackingStatus.DISPOSED
        db_session.refresh(industry)
        assert industry.points == balance

    @pytest.mark.asyncio
    async def test_complete_marks_tracking_disposed(self, db_session, industry, admin):
        service = PickupService(db_session)
        pickup, tracking_id = await service.schedule(actor(industry), schedule_request())

        _, _, tracking_updated = await service.complete(
            pickup.id, CompletePickupRequest(actual_weight=3), actor(admin)
        )

        assert tracking_updated is True
        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        assert tracking.status == TrackingStatus.DISPOSED
        assert tracking.disposal_date is not None

    @pytest.mark.asyncio
    async def test_strict_tracking_rejection_keeps_completion(
        self, db_session, industry, admin
    ):
        service = PickupService(db_session)
        service.tracking.strict_transitions = True
        pickup, tracking_id = await service.schedule(actor(industry), schedule_request())

        completed, _, tracking_updated = await service.complete(
            pickup.id, CompletePickupRequest(), actor(admin)
        )

        assert completed.status == PickupStatus.COMPLETED
        assert tracking_updated is False
        tracking = db_session.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one()
        assert tracking.status == TrackingStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_completion_level_up_notification(self, db_session, make_user, admin):
        owner = make_user(points=80, level=1)
        service = PickupService(db_session)
        pickup, _ = await service.schedule(
            actor(owner), schedule_request(waste_type=PickupWasteType.BIODEGRADABLE)
        )

        await service.complete(pickup.id, CompletePickupRequest(actual_weight=10), actor(admin))

        db_session.refresh(owner)
        assert owner.points == 80 + 5 + 20
        assert owner.level == 2
        types = {
            n.type
            for n in db_session.execute(
                select(Notification).where(Notification.user_id == owner.id)
            ).scalars()
        }
        assert NotificationType.LEVEL_UP in types
        assert NotificationType.PICKUP_COMPLETED in types


class TestPickupUpdates:
    """Test rating and manual status moves."""

    @pytest.mark.asyncio
    async def test_rate_requires_completed(self, db_session, citizen):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        with pytest.raises(InvalidStateError):
            await service.rate(actor(citizen), pickup.id, RatePickupRequest(rating=5))

    @pytest.mark.asyncio
    async def test_rate_completed_pickup(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        await service.complete(pickup.id, CompletePickupRequest(), actor(admin))

        rated = await service.rate(
            actor(citizen), pickup.id, RatePickupRequest(rating=4, feedback="On time")
        )

        assert rated.rating == 4
        assert rated.feedback == "On time"

    @pytest.mark.asyncio
    async def test_only_owner_can_rate(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())
        await service.complete(pickup.id, CompletePickupRequest(), actor(admin))

        with pytest.raises(AuthorizationError):
            await service.rate(actor(admin), pickup.id, RatePickupRequest(rating=1))

    @pytest.mark.asyncio
    async def test_status_moves_forward_only(self, db_session, citizen, pickup_agent):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        in_progress = await service.update_status(
            pickup.id,
            UpdatePickupStatusRequest(status=PickupStatus.IN_PROGRESS),
            actor(pickup_agent),
        )
        assert in_progress.status == PickupStatus.IN_PROGRESS
        assert in_progress.assigned_collector_id == pickup_agent.id

        with pytest.raises(InvalidStateError):
            await service.update_status(
                pickup.id,
                UpdatePickupStatusRequest(status=PickupStatus.CONFIRMED),
                actor(pickup_agent),
            )

    @pytest.mark.asyncio
    async def test_status_endpoint_cannot_complete(self, db_session, citizen, admin):
        service = PickupService(db_session)
        pickup, _ = await service.schedule(actor(citizen), schedule_request())

        with pytest.raises(InvalidStateError):
            await service.update_status(
                pickup.id,
                UpdatePickupStatusRequest(status=PickupStatus.COMPLETED),
                actor(admin),
            )


class TestPickupQueries:
    """Test listing and statistics."""

    @pytest.mark.asyncio
    async def test_my_pickups_sorted_by_date_desc(self, db_session, citizen, make_pickup):
        soon = make_pickup(citizen, pickup_date=naive_utc_now() + timedelta(days=1))
        later = make_pickup(citizen, pickup_date=naive_utc_now() + timedelta(days=5))
        service = PickupService(db_session)

        pickups, total = await service.get_my_pickups(citizen.id)

        assert total == 2
        assert [p.id for p in pickups] == [later.id, soon.id]

    @pytest.mark.asyncio
    async def test_my_pickups_status_filter(self, db_session, citizen, make_pickup):
        make_pickup(citizen)
        done = make_pickup(citizen, status=PickupStatus.COMPLETED)
        service = PickupService(db_session)

        pickups, total = await service.get_my_pickups(
            citizen.id, status=PickupStatus.COMPLETED
        )

        assert total == 1
        assert pickups[0].id == done.id

    @pytest.mark.asyncio
    async def test_stats_for_empty_user(self, db_session, citizen):
        stats = await PickupService(db_session).get_stats(actor(citizen))

        assert stats.total_pickups == 0
        assert stats.status_breakdown == {}
        assert stats.total_weight_collected == 0
        assert stats.total_points_earned == 0
        assert stats.upcoming_pickups == 0

    @pytest.mark.asyncio
    async def test_stats_aggregate(self, db_session, citizen, make_user, make_pickup):
        make_pickup(citizen)
        make_pickup(
            citizen,
            status=PickupStatus.COMPLETED,
            actual_weight=8.5,
            points_awarded=23,
        )
        make_pickup(
            citizen,
            status=PickupStatus.COMPLETED,
            actual_weight=None,
            estimated_weight=2,
            points_awarded=17,
        )
        make_pickup(citizen, status=PickupStatus.CANCELLED)
        make_pickup(make_user())

        stats = await PickupService(db_session).get_stats(actor(citizen))

        assert stats.total_pickups == 4
        assert stats.status_breakdown == {"scheduled": 1, "completed": 2, "cancelled": 1}
        assert stats.total_weight_collected == 10.5
        assert stats.total_points_earned == 40
        assert stats.upcoming_pickups == 1

    @pytest.mark.asyncio
    async def test_admin_stats_are_global(self, db_session, citizen, admin, make_user, make_pickup):
        make_pickup(citizen)
        make_pickup(make_user())

        stats = await PickupService(db_session).get_stats(actor(admin))

        assert stats.total_pickups == 2

    @pytest.mark.asyncio
    async def test_get_pickup_owner_or_admin(self, db_session, citizen, admin, make_user, make_pickup):
        pickup = make_pickup(citizen)
        service = PickupService(db_session)

        assert (await service.get_pickup(actor(citizen), pickup.id)).id == pickup.id
        assert (await service.get_pickup(actor(admin), pickup.id)).id == pickup.id
        with pytest.raises(AuthorizationError):
            await service.get_pickup(actor(make_user()), pickup.id)
