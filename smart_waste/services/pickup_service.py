import math
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Depends
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from smart_waste.db.models import (
    CancelledBy,
    HazardLevel,
    Pickup,
    PickupStatus,
    PickupWasteType,
    TrackingStatus,
    User,
    UserType,
)
from smart_waste.db.session import get_sync_session
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.schemas.pickup_schemas import (
    CompletePickupRequest,
    PickupResponse,
    PickupStatsResponse,
    RatePickupRequest,
    SchedulePickupRequest,
    UpdatePickupStatusRequest,
)
from smart_waste.services.notifications import notification_events
from smart_waste.services.points_service import PointsService
from smart_waste.services.waste_tracking_service import (
    PICKUP_MANIFEST_TYPES,
    WasteTrackingService,
    actor_display_name,
)
from smart_waste.utils.datetime_utils import (
    naive_utc_now,
    start_of_today,
    to_naive_utc,
)
from smart_waste.utils.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from smart_waste.utils.logging import get_logger
from smart_waste.utils.string_utils import random_code

logger = get_logger()

BASE_POINTS: Dict[PickupWasteType, int] = {
    PickupWasteType.BIODEGRADABLE: 10,
    PickupWasteType.RECYCLABLE: 15,
    PickupWasteType.E_WASTE: 20,
    PickupWasteType.HAZARDOUS: 25,
}

TERMINAL_STATUSES = (PickupStatus.COMPLETED, PickupStatus.CANCELLED)

# Forward-only order for manual status updates
STATUS_ORDER: List[PickupStatus] = [
    PickupStatus.SCHEDULED,
    PickupStatus.CONFIRMED,
    PickupStatus.IN_PROGRESS,
    PickupStatus.COMPLETED,
]


def scheduling_points(waste_type: PickupWasteType) -> int:
    """Half the base points, credited up front when a pickup is booked."""
    return BASE_POINTS[waste_type] // 2


def completion_points(
    waste_type: PickupWasteType,
    actual_weight: Optional[float],
    estimated_weight: Optional[float],
) -> int:
    """Base points plus one point per whole kg collected."""
    weight = actual_weight or estimated_weight or 0
    return BASE_POINTS[waste_type] + math.floor(weight)


class PickupService:
    """Service provider for the pickup lifecycle and its point awards"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.points = PointsService(db_session)
        self.tracking = WasteTrackingService(db_session)

    async def get_pickup_by_id(self, pickup_id: str) -> Pickup:
        pickup = self.db.get(Pickup, pickup_id)
        if not pickup:
            raise NotFoundError("Pickup not found", "PICKUP_NOT_FOUND")
        return pickup

    @staticmethod
    def _ensure_owner_or_admin(pickup: Pickup, current_user: AuthState) -> None:
        if pickup.user_id != current_user.user_id and not current_user.is_admin:
            raise AuthorizationError(
                "Not authorized to access this pickup", "NOT_PICKUP_OWNER"
            )

    # Best-effort side effects run after the primary commit
    async def _notify_best_effort(self, builder: Callable, *args) -> None:
        try:
            builder(self.db, *args)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Notification '{builder.__name__}' failed: {e}")

    async def _mirror_tracking_best_effort(
        self, pickup: Pickup, status: TrackingStatus, actor: AuthState, notes: str
    ) -> bool:
        try:
            tracking = await self.tracking.record_pickup_event(
                pickup.id, status, actor_display_name(actor), notes=notes
            )
            return tracking is not None
        except Exception as e:
            self.db.rollback()
            logger.warning(
                f"Could not record '{status.value}' on tracking for pickup {pickup.id}: {e}"
            )
            return False

    async def _open_tracking_best_effort(
        self, pickup: Pickup, user: User, request: SchedulePickupRequest
    ) -> Optional[str]:
        try:
            tracking = await self.tracking.open_tracking(
                pickup=pickup,
                industry=user,
                manifest_waste_type=request.manifest_waste_type
                or PICKUP_MANIFEST_TYPES[pickup.waste_type],
                quantity_amount=pickup.estimated_weight,
                quantity_unit="kg",
                description=request.waste_description
                or pickup.special_instructions
                or "Scheduled waste pickup",
                hazard_level=request.hazard_level
                or (
                    HazardLevel.HIGH
                    if pickup.waste_type == PickupWasteType.HAZARDOUS
                    else HazardLevel.LOW
                ),
                scheduled_date=pickup.pickup_date,
            )
            return tracking.tracking_id
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Could not open tracking for pickup {pickup.id}: {e}")
            return None

    # Lifecycle
    async def schedule(
        self, current_user: AuthState, request: SchedulePickupRequest
    ) -> Tuple[PickupResponse, Optional[str]]:
        """
        Book a pickup and credit half of its base points.

        Returns the pickup and, for industry users, the tracking ID of the
        shipment record opened alongside it (None if that failed).
        """
        pickup_date = to_naive_utc(request.pickup_date)
        if pickup_date < start_of_today():
            raise ValidationError(
                "Pickup date must be today or in the future", "PAST_PICKUP_DATE"
            )

        user = self.db.get(User, current_user.user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        pickup = Pickup(
            user_id=user.id,
            waste_type=request.waste_type,
            pickup_date=pickup_date,
            time_slot=request.time_slot,
            address=request.address,
            latitude=request.latitude,
            longitude=request.longitude,
            estimated_weight=request.estimated_weight,
            contact_phone=request.contact_phone or user.phone,
            special_instructions=request.special_instructions,
            status=PickupStatus.SCHEDULED,
            verification_code=random_code(6),
            points_awarded=scheduling_points(request.waste_type),
        )
        self.db.add(pickup)
        self.db.flush()

        await self.points.adjust(
            user.id, pickup.points_awarded, "pickup_scheduled", pickup_id=pickup.id
        )
        self.db.commit()
        self.db.refresh(pickup)
        logger.info(
            f"Scheduled {pickup.waste_type.value} pickup {pickup.id} for user {user.id}"
        )

        tracking_id = None
        if user.user_type == UserType.INDUSTRY:
            tracking_id = await self._open_tracking_best_effort(pickup, user, request)

        await self._notify_best_effort(
            notification_events.notify_pickup_scheduled, pickup
        )
        return PickupResponse.model_validate(pickup), tracking_id

    async def cancel(
        self, current_user: AuthState, pickup_id: str, reason: Optional[str] = None
    ) -> Tuple[PickupResponse, bool]:
        """Cancel a pickup and take back exactly the points it credited."""
        pickup = await self.get_pickup_by_id(pickup_id)
        self._ensure_owner_or_admin(pickup, current_user)
        if pickup.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot cancel a {pickup.status.value} pickup", "PICKUP_NOT_CANCELLABLE"
            )

        pickup.status = PickupStatus.CANCELLED
        pickup.cancellation_reason = reason or "Cancelled by user"
        pickup.cancelled_by = (
            CancelledBy.USER
            if pickup.user_id == current_user.user_id
            else CancelledBy.ADMIN
        )
        pickup.cancelled_at = naive_utc_now()
        if pickup.points_awarded:
            await self.points.adjust(
                pickup.user_id,
                -pickup.points_awarded,
                "pickup_cancelled",
                pickup_id=pickup.id,
            )
        self.db.commit()
        self.db.refresh(pickup)
        logger.info(f"Cancelled pickup {pickup.id}, reversed {pickup.points_awarded} points")

        tracking_updated = await self._mirror_tracking_best_effort(
            pickup, TrackingStatus.CANCELLED, current_user, pickup.cancellation_reason
        )
        await self._notify_best_effort(
            notification_events.notify_pickup_cancelled, pickup, reason
        )
        return PickupResponse.model_validate(pickup), tracking_updated

    async def complete(
        self,
        pickup_id: str,
        request: CompletePickupRequest,
        actor: AuthState,
    ) -> Tuple[PickupResponse, int, bool]:
        """
        Mark a pickup collected and credit its full points.

        The half points credited at scheduling are kept.
        """
        pickup = await self.get_pickup_by_id(pickup_id)
        if pickup.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Pickup is already {pickup.status.value}", "PICKUP_ALREADY_FINAL"
            )

        now = naive_utc_now()
        points = completion_points(
            pickup.waste_type, request.actual_weight, pickup.estimated_weight
        )
        previous_level = self.db.execute(
            select(User.level).where(User.id == pickup.user_id)
        ).scalar_one_or_none()

        pickup.status = PickupStatus.COMPLETED
        pickup.completed_at = now
        pickup.actual_pickup_time = now
        if request.actual_weight is not None:
            pickup.actual_weight = request.actual_weight
        if request.rating is not None:
            pickup.rating = request.rating
        if request.feedback:
            pickup.feedback = request.feedback
        if actor.user_type == UserType.PICKUP_AGENT.value and not pickup.assigned_collector_id:
            pickup.assigned_collector_id = actor.user_id
        pickup.points_awarded = points

        transaction = await self.points.adjust(
            pickup.user_id, points, "pickup_completed", pickup_id=pickup.id
        )
        self.db.commit()
        self.db.refresh(pickup)
        logger.info(f"Completed pickup {pickup.id}, awarded {points} points")

        tracking_updated = await self._mirror_tracking_best_effort(
            pickup, TrackingStatus.DISPOSED, actor, "Pickup completed"
        )
        await self._notify_best_effort(
            notification_events.notify_pickup_completed, pickup, points
        )
        new_level = transaction.balance_after // 100 + 1
        if previous_level is not None and new_level > previous_level:
            await self._notify_best_effort(
                notification_events.notify_level_up, pickup.user_id, new_level
            )
        return PickupResponse.model_validate(pickup), points, tracking_updated

    async def rate(
        self, current_user: AuthState, pickup_id: str, request: RatePickupRequest
    ) -> PickupResponse:
        pickup = await self.get_pickup_by_id(pickup_id)
        if pickup.user_id != current_user.user_id:
            raise AuthorizationError(
                "Not authorized to rate this pickup", "NOT_PICKUP_OWNER"
            )
        if pickup.status != PickupStatus.COMPLETED:
            raise InvalidStateError(
                "Only completed pickups can be rated", "PICKUP_NOT_COMPLETED"
            )

        pickup.rating = request.rating
        if request.feedback is not None:
            pickup.feedback = request.feedback
        self.db.commit()
        self.db.refresh(pickup)
        return PickupResponse.model_validate(pickup)

    async def update_status(
        self,
        pickup_id: str,
        request: UpdatePickupStatusRequest,
        actor: AuthState,
    ) -> PickupResponse:
        """Move a pickup forward to confirmed or in-progress."""
        pickup = await self.get_pickup_by_id(pickup_id)
        if pickup.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Pickup is already {pickup.status.value}", "PICKUP_ALREADY_FINAL"
            )
        if request.status == PickupStatus.COMPLETED:
            raise InvalidStateError(
                "Use the complete endpoint to finish a pickup", "USE_COMPLETE"
            )
        if request.status == PickupStatus.CANCELLED:
            raise InvalidStateError(
                "Use the cancel endpoint to cancel a pickup", "USE_CANCEL"
            )
        if STATUS_ORDER.index(request.status) <= STATUS_ORDER.index(pickup.status):
            raise InvalidStateError(
                f"Cannot move pickup from '{pickup.status.value}' to '{request.status.value}'",
                "INVALID_PICKUP_TRANSITION",
            )

        if request.assigned_collector_id:
            collector = self.db.get(User, request.assigned_collector_id)
            if not collector or collector.user_type != UserType.PICKUP_AGENT:
                raise ValidationError(
                    "Assigned collector must be a pickup agent", "INVALID_COLLECTOR"
                )
            pickup.assigned_collector_id = collector.id
        elif actor.user_type == UserType.PICKUP_AGENT.value:
            pickup.assigned_collector_id = actor.user_id

        pickup.status = request.status
        self.db.commit()
        self.db.refresh(pickup)
        logger.info(f"Pickup {pickup.id} moved to {pickup.status.value}")

        await self._notify_best_effort(notification_events.notify_pickup_status, pickup)
        return PickupResponse.model_validate(pickup)

    # Queries
    async def get_pickup(self, current_user: AuthState, pickup_id: str) -> PickupResponse:
        pickup = await self.get_pickup_by_id(pickup_id)
        self._ensure_owner_or_admin(pickup, current_user)
        return PickupResponse.model_validate(pickup)

    async def get_my_pickups(
        self,
        user_id: str,
        status: Optional[PickupStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[PickupResponse], int]:
        conditions = [Pickup.user_id == user_id]
        if status:
            conditions.append(Pickup.status == status)

        total = self.db.execute(
            select(func.count(Pickup.id)).where(*conditions)
        ).scalar_one()
        pickups = (
            self.db.execute(
                select(Pickup)
                .where(*conditions)
                .order_by(desc(Pickup.pickup_date))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [PickupResponse.model_validate(p) for p in pickups], total

    async def get_stats(self, current_user: AuthState) -> PickupStatsResponse:
        """Pickup aggregates for the caller, or across all users for admins."""
        scope = [] if current_user.is_admin else [Pickup.user_id == current_user.user_id]

        breakdown = {
            status.value: count
            for status, count in self.db.execute(
                select(Pickup.status, func.count(Pickup.id))
                .where(*scope)
                .group_by(Pickup.status)
            ).all()
        }

        completed = scope + [Pickup.status == PickupStatus.COMPLETED]
        total_weight, total_points = self.db.execute(
            select(
                func.coalesce(
                    func.sum(func.coalesce(Pickup.actual_weight, Pickup.estimated_weight)),
                    0,
                ),
                func.coalesce(func.sum(Pickup.points_awarded), 0),
            ).where(*completed)
        ).one()

        upcoming = self.db.execute(
            select(func.count(Pickup.id)).where(
                *scope,
                Pickup.status.in_([PickupStatus.SCHEDULED, PickupStatus.CONFIRMED]),
                Pickup.pickup_date >= start_of_today(),
            )
        ).scalar_one()

        return PickupStatsResponse(
            total_pickups=sum(breakdown.values()),
            status_breakdown=breakdown,
            total_weight_collected=round(float(total_weight or 0), 2),
            total_points_earned=int(total_points or 0),
            upcoming_pickups=upcoming,
        )


def get_pickup_service(db: Session = Depends(get_sync_session)) -> PickupService:
    return PickupService(db)
