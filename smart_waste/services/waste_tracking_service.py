from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from fastapi import Depends
from sqlalchemy import case, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smart_waste.config.settings import settings
from smart_waste.db.models import (
    HazardLevel,
    ManifestWasteType,
    QuantityUnit,
    Pickup,
    PickupWasteType,
    TrackingDisposalMethod,
    TrackingStatus,
    User,
    WasteTracking,
    WasteTrackingStatusHistory,
)
from smart_waste.db.session import get_sync_session
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.schemas.waste_tracking_schemas import (
    CreateTrackingRequest,
    LocationSchema,
    TrackingResponse,
    TrackingStatsResponse,
    UpdateTrackingStatusRequest,
)
from smart_waste.utils.datetime_utils import naive_utc_now, to_naive_utc
from smart_waste.utils.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from smart_waste.utils.logging import get_logger
from smart_waste.utils.string_utils import status_key

logger = get_logger()

TRACKING_ID_PREFIX = "WM"

TERMINAL_STATUSES: Set[TrackingStatus] = {
    TrackingStatus.DISPOSED,
    TrackingStatus.CANCELLED,
}

# Checked only when STRICT_TRACKING_TRANSITIONS is on
ALLOWED_TRANSITIONS: Dict[TrackingStatus, Set[TrackingStatus]] = {
    TrackingStatus.SCHEDULED: {TrackingStatus.COLLECTED, TrackingStatus.CANCELLED},
    TrackingStatus.COLLECTED: {
        TrackingStatus.IN_TRANSIT,
        TrackingStatus.AT_FACILITY,
        TrackingStatus.CANCELLED,
    },
    TrackingStatus.IN_TRANSIT: {
        TrackingStatus.AT_FACILITY,
        TrackingStatus.DISPOSED,
        TrackingStatus.CANCELLED,
    },
    TrackingStatus.AT_FACILITY: {TrackingStatus.DISPOSED, TrackingStatus.CANCELLED},
    TrackingStatus.DISPOSED: set(),
    TrackingStatus.CANCELLED: set(),
}

PICKUP_MANIFEST_TYPES: Dict[PickupWasteType, ManifestWasteType] = {
    PickupWasteType.BIODEGRADABLE: ManifestWasteType.NON_HAZARDOUS,
    PickupWasteType.RECYCLABLE: ManifestWasteType.NON_HAZARDOUS,
    PickupWasteType.E_WASTE: ManifestWasteType.E_WASTE,
    PickupWasteType.HAZARDOUS: ManifestWasteType.HAZARDOUS,
}


def actor_display_name(actor: AuthState) -> str:
    return actor.name or actor.email or actor.user_id


class WasteTrackingService:
    """Tracking records for industrial shipments and their append-only status history"""

    def __init__(self, db_session: Session, strict_transitions: Optional[bool] = None):
        self.db = db_session
        self.strict_transitions = (
            settings.STRICT_TRACKING_TRANSITIONS
            if strict_transitions is None
            else strict_transitions
        )

    # Tracking ID generation
    async def generate_tracking_id(self, now: Optional[datetime] = None) -> str:
        """
        Next sequential tracking ID for the year, e.g. WM-2025-000042.

        The sequence restarts at 000001 each year. Two concurrent callers can
        compute the same ID; the unique index rejects the second insert.
        """
        year = (now or naive_utc_now()).year
        prefix = f"{TRACKING_ID_PREFIX}-{year}-"
        last_tracking_id = self.db.execute(
            select(WasteTracking.tracking_id)
            .where(WasteTracking.tracking_id.like(f"{prefix}%"))
            .order_by(desc(WasteTracking.tracking_id))
            .limit(1)
        ).scalar_one_or_none()

        next_number = 1
        if last_tracking_id:
            next_number = int(last_tracking_id.rsplit("-", 1)[1]) + 1
        return f"{prefix}{next_number:06d}"

    # Status ledger
    def can_transition(self, current: TrackingStatus, target: TrackingStatus) -> bool:
        if not self.strict_transitions:
            return True
        return target in ALLOWED_TRANSITIONS.get(current, set())

    async def add_status_update(
        self,
        tracking: WasteTracking,
        status: TrackingStatus,
        updated_by: str,
        notes: Optional[str] = None,
        location: Optional[LocationSchema] = None,
        collector_name: Optional[str] = None,
        vehicle_number: Optional[str] = None,
        facility_name: Optional[str] = None,
        disposal_method: Optional[TrackingDisposalMethod] = None,
    ) -> WasteTrackingStatusHistory:
        """Set the current status and append the matching history entry. Does not commit."""
        if not self.can_transition(tracking.status, status):
            raise InvalidStateError(
                f"Cannot move tracking {tracking.tracking_id} from '{tracking.status.value}' to '{status.value}'",
                "INVALID_TRACKING_TRANSITION",
            )

        now = naive_utc_now()
        entry = WasteTrackingStatusHistory(
            sequence=len(tracking.status_history) + 1,
            status=status,
            timestamp=now,
            updated_by=updated_by,
            notes=notes,
            location_lat=location.latitude if location else None,
            location_lng=location.longitude if location else None,
            location_address=location.address if location else None,
        )
        tracking.status = status
        tracking.status_history.append(entry)

        if status == TrackingStatus.COLLECTED:
            tracking.collection_collected_date = now
            if collector_name:
                tracking.collection_collector_name = collector_name
            if vehicle_number:
                tracking.collection_vehicle_number = vehicle_number

        if status in (TrackingStatus.AT_FACILITY, TrackingStatus.DISPOSED):
            if facility_name:
                tracking.disposal_facility_name = facility_name
            if disposal_method:
                tracking.disposal_method = disposal_method
            if status == TrackingStatus.DISPOSED:
                tracking.disposal_date = now

        return entry

    # Creation
    async def open_tracking(
        self,
        pickup: Pickup,
        industry: User,
        manifest_waste_type: ManifestWasteType,
        quantity_amount: float = 0,
        quantity_unit: str = "tons",
        description: Optional[str] = None,
        hazard_level: HazardLevel = HazardLevel.LOW,
        scheduled_date: Optional[datetime] = None,
    ) -> WasteTracking:
        """Insert a tracking record with its initial Scheduled entry and commit it."""
        industry_name = industry.company_name or industry.name
        tracking = WasteTracking(
            tracking_id=await self.generate_tracking_id(),
            industry_id=industry.id,
            industry_name=industry_name,
            pickup_id=pickup.id,
            manifest_waste_type=manifest_waste_type,
            manifest_quantity_amount=quantity_amount,
            manifest_quantity_unit=quantity_unit,
            manifest_description=description,
            manifest_hazard_level=hazard_level,
            collection_scheduled_date=scheduled_date or pickup.pickup_date,
            status=TrackingStatus.SCHEDULED,
        )
        tracking.status_history.append(
            WasteTrackingStatusHistory(
                sequence=1,
                status=TrackingStatus.SCHEDULED,
                timestamp=naive_utc_now(),
                updated_by=industry_name,
                notes="Waste pickup scheduled",
            )
        )

        self.db.add(tracking)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"Tracking ID collision on {tracking.tracking_id} for pickup {pickup.id}"
            )
            raise ConflictError(
                "Tracking ID already taken, please retry", "TRACKING_ID_CONFLICT"
            )

        self.db.refresh(tracking)
        logger.info(f"Opened tracking {tracking.tracking_id} for pickup {pickup.id}")
        return tracking

    async def create_tracking(
        self, current_user: AuthState, request: CreateTrackingRequest
    ) -> TrackingResponse:
        pickup = self.db.get(Pickup, request.pickup_id)
        if not pickup:
            raise NotFoundError("Pickup not found", "PICKUP_NOT_FOUND")
        if pickup.user_id != current_user.user_id:
            raise AuthorizationError(
                "Not authorized to track this pickup", "NOT_PICKUP_OWNER"
            )
        if await self.get_tracking_for_pickup(pickup.id):
            raise ConflictError(
                "A tracking record already exists for this pickup", "TRACKING_EXISTS"
            )

        industry = self.db.get(User, current_user.user_id)
        if not industry:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        manifest = request.waste_manifest
        tracking = await self.open_tracking(
            pickup=pickup,
            industry=industry,
            manifest_waste_type=manifest.waste_type,
            quantity_amount=manifest.quantity.amount,
            quantity_unit=manifest.quantity.unit,
            description=manifest.description,
            hazard_level=manifest.hazard_level,
            scheduled_date=(
                to_naive_utc(request.scheduled_date) if request.scheduled_date else None
            ),
        )
        return TrackingResponse.from_tracking(tracking)

    # Queries
    async def get_tracking_for_pickup(self, pickup_id: str) -> Optional[WasteTracking]:
        return self.db.execute(
            select(WasteTracking).where(WasteTracking.pickup_id == pickup_id)
        ).scalar_one_or_none()

    async def _get_by_tracking_id(self, tracking_id: str) -> WasteTracking:
        tracking = self.db.execute(
            select(WasteTracking).where(WasteTracking.tracking_id == tracking_id)
        ).scalar_one_or_none()
        if not tracking:
            raise NotFoundError("Tracking record not found", "TRACKING_NOT_FOUND")
        return tracking

    async def get_by_tracking_id(self, tracking_id: str) -> TrackingResponse:
        return TrackingResponse.from_tracking(
            await self._get_by_tracking_id(tracking_id)
        )

    async def _list(
        self,
        conditions: list,
        page: int,
        limit: int,
    ) -> Tuple[List[TrackingResponse], int]:
        total = self.db.execute(
            select(func.count(WasteTracking.id)).where(*conditions)
        ).scalar_one()
        trackings = (
            self.db.execute(
                select(WasteTracking)
                .where(*conditions)
                .order_by(desc(WasteTracking.created_at))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [TrackingResponse.from_tracking(t) for t in trackings], total

    @staticmethod
    def _filters(
        status: Optional[TrackingStatus],
        start_date: Optional[datetime],
        end_date: Optional[datetime],
    ) -> list:
        conditions = []
        if status:
            conditions.append(WasteTracking.status == status)
        if start_date:
            conditions.append(WasteTracking.created_at >= to_naive_utc(start_date))
        if end_date:
            conditions.append(WasteTracking.created_at <= to_naive_utc(end_date))
        return conditions

    async def get_my_trackings(
        self,
        industry_id: str,
        status: Optional[TrackingStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[TrackingResponse], int]:
        conditions = [WasteTracking.industry_id == industry_id]
        conditions += self._filters(status, start_date, end_date)
        return await self._list(conditions, page, limit)

    async def get_all_trackings(
        self,
        status: Optional[TrackingStatus] = None,
        industry_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[TrackingResponse], int]:
        conditions = self._filters(status, start_date, end_date)
        if industry_id:
            conditions.append(WasteTracking.industry_id == industry_id)
        return await self._list(conditions, page, limit)

    # Mutations
    async def update_status(
        self,
        tracking_id: str,
        request: UpdateTrackingStatusRequest,
        actor: AuthState,
    ) -> TrackingResponse:
        tracking = await self._get_by_tracking_id(tracking_id)
        await self.add_status_update(
            tracking,
            request.status,
            updated_by=actor_display_name(actor),
            notes=request.notes,
            location=request.location,
            collector_name=request.collector_name,
            vehicle_number=request.vehicle_number,
            facility_name=request.facility_name,
            disposal_method=request.disposal_method,
        )
        self.db.commit()
        self.db.refresh(tracking)

        logger.info(f"Tracking {tracking_id} moved to {request.status.value}")
        return TrackingResponse.from_tracking(tracking)

    async def record_pickup_event(
        self,
        pickup_id: str,
        status: TrackingStatus,
        updated_by: str,
        notes: Optional[str] = None,
    ) -> Optional[WasteTracking]:
        """Mirror a pickup lifecycle event onto its tracking record, if one exists."""
        tracking = await self.get_tracking_for_pickup(pickup_id)
        if not tracking:
            return None
        await self.add_status_update(tracking, status, updated_by, notes=notes)
        self.db.commit()
        return tracking

    async def delete_tracking(self, tracking_id: str) -> None:
        tracking = await self._get_by_tracking_id(tracking_id)
        self.db.delete(tracking)
        self.db.commit()
        logger.info(f"Deleted tracking {tracking_id}")

    # Statistics
    async def get_stats(self, current_user: AuthState) -> TrackingStatsResponse:
        # Manifests opened from pickups are in kg; totals are reported in tons
        quantity_in_tons = case(
            (
                WasteTracking.manifest_quantity_unit == QuantityUnit.KG.value,
                WasteTracking.manifest_quantity_amount / 1000,
            ),
            else_=WasteTracking.manifest_quantity_amount,
        )
        query = select(
            WasteTracking.status,
            func.count(WasteTracking.id),
            func.coalesce(func.sum(quantity_in_tons), 0),
        ).group_by(WasteTracking.status)
        if not current_user.is_admin:
            query = query.where(WasteTracking.industry_id == current_user.user_id)

        stats = TrackingStatsResponse()
        counts = {}
        for status, count, total_quantity in self.db.execute(query).all():
            counts[status_key(status.value)] = count
            stats.total += count
            if status == TrackingStatus.DISPOSED:
                stats.total_waste_disposed = round(float(total_quantity or 0), 2)

        stats.scheduled = counts.get("scheduled", 0)
        stats.collected = counts.get("collected", 0)
        stats.in_transit = counts.get("inTransit", 0)
        stats.at_facility = counts.get("atFacility", 0)
        stats.disposed = counts.get("disposed", 0)
        stats.cancelled = counts.get("cancelled", 0)
        return stats


def get_waste_tracking_service(
    db: Session = Depends(get_sync_session),
) -> WasteTrackingService:
    return WasteTrackingService(db)
