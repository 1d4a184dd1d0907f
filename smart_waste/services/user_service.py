from fastapi import Depends
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from smart_waste.db.models import Pickup, PickupStatus, User, UserType
from smart_waste.db.session import get_sync_session
from smart_waste.schemas.auth_schemas import ProfileResponse, UpdateProfileRequest
from smart_waste.utils.errors import NotFoundError
from smart_waste.utils.logging import get_logger

logger = get_logger()

PENDING_STATUSES = (
    PickupStatus.SCHEDULED,
    PickupStatus.CONFIRMED,
    PickupStatus.IN_PROGRESS,
)


class UserService:
    def __init__(self, db_session: Session):
        self.db = db_session

    async def _get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    async def get_profile(self, user_id: str) -> ProfileResponse:
        """Profile plus pickup counters and kg recycled"""
        user = await self._get_user(user_id)

        completed = Pickup.status == PickupStatus.COMPLETED
        total, completed_count, pending_count, recycled = self.db.execute(
            select(
                func.count(Pickup.id),
                func.coalesce(func.sum(case((completed, 1), else_=0)), 0),
                func.coalesce(
                    func.sum(case((Pickup.status.in_(PENDING_STATUSES), 1), else_=0)),
                    0,
                ),
                func.coalesce(
                    func.sum(
                        case(
                            (
                                completed,
                                func.coalesce(
                                    Pickup.actual_weight, Pickup.estimated_weight
                                ),
                            ),
                            else_=0,
                        )
                    ),
                    0,
                ),
            ).where(Pickup.user_id == user_id)
        ).one()

        return ProfileResponse.from_user(
            user,
            total_pickups=total,
            completed_pickups=int(completed_count),
            pending_pickups=int(pending_count),
            waste_recycled=round(float(recycled), 2),
        )

    async def update_profile(
        self, user_id: str, request: UpdateProfileRequest
    ) -> ProfileResponse:
        user = await self._get_user(user_id)
        changes = request.model_dump(exclude_unset=True, exclude={"address"})

        # Industry profile fields only apply to industry accounts
        if user.user_type != UserType.INDUSTRY:
            for field in ("company_name", "industry_type", "waste_generation_capacity"):
                changes.pop(field, None)

        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)

        if request.address is not None:
            for field, value in request.address.model_dump(exclude_unset=True).items():
                setattr(user, field, value)

        self.db.commit()
        logger.info(f"Updated profile for user {user_id}")
        return await self.get_profile(user_id)


def get_user_service(db: Session = Depends(get_sync_session)) -> UserService:
    return UserService(db)
