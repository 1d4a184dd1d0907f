from datetime import datetime
from typing import List, Optional

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from smart_waste.db.models import Pickup, PickupStatus, User, UserType
from smart_waste.db.session import get_sync_session
from smart_waste.schemas.rewards_schemas import (
    AwardPointsRequest,
    Badge,
    BadgesResponse,
    LeaderboardEntry,
    MyRankResponse,
    PointsBalanceResponse,
    RankedUser,
    RedeemRequest,
    RedeemResponse,
)
from smart_waste.services.notifications import notification_events
from smart_waste.services.points_service import PointsService, level_for
from smart_waste.utils.errors import NotFoundError
from smart_waste.utils.logging import get_logger
from smart_waste.utils.number_utils import round_half_up

logger = get_logger()

# (id, name, description, kind, threshold)
BADGE_RULES = [
    ("first_step", "First Step", "Complete your first pickup", "pickups", 1),
    ("eco_warrior", "Eco Warrior", "Complete 10 pickups", "pickups", 10),
    ("recycling_hero", "Recycling Hero", "Recycle 50 kg of waste", "weight", 50),
    ("waste_master", "Waste Master", "Complete 25 pickups", "pickups", 25),
    ("green_champion", "Green Champion", "Reach level 10", "level", 10),
]


class RewardsService:
    """Leaderboard, ranks, badges and point awards/redemptions"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.points = PointsService(db_session)

    async def _get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Top citizens by points with their completed pickup totals"""
        completed = (
            select(
                Pickup.user_id.label("user_id"),
                func.count(Pickup.id).label("pickups_completed"),
                func.sum(
                    func.coalesce(Pickup.actual_weight, Pickup.estimated_weight)
                ).label("waste_recycled"),
            )
            .where(Pickup.status == PickupStatus.COMPLETED)
            .group_by(Pickup.user_id)
            .subquery()
        )
        rows = self.db.execute(
            select(
                User.id,
                User.name,
                User.points,
                User.level,
                func.coalesce(completed.c.pickups_completed, 0),
                func.coalesce(completed.c.waste_recycled, 0),
            )
            .outerjoin(completed, completed.c.user_id == User.id)
            .where(User.user_type == UserType.CITIZEN)
            .order_by(User.points.desc(), User.created_at.asc())
            .limit(limit)
        ).all()

        return [
            LeaderboardEntry(
                id=user_id,
                name=name,
                points=points,
                level=level,
                pickups_completed=int(pickups),
                waste_recycled=round(float(weight), 2),
            )
            for user_id, name, points, level, pickups, weight in rows
        ]

    async def get_my_rank(self, user_id: str) -> MyRankResponse:
        """Rank among users of the caller's own type, with two neighbours each side"""
        user = await self._get_user(user_id)
        ranking = self.db.execute(
            select(User.id, User.name, User.points)
            .where(User.user_type == user.user_type)
            .order_by(User.points.desc(), User.created_at.asc())
        ).all()

        ids = [row.id for row in ranking]
        rank = ids.index(user.id) + 1
        total = len(ranking)
        nearby = [
            RankedUser(id=row.id, name=row.name, points=row.points, rank=index + 1)
            for index, row in enumerate(ranking)
        ][max(0, rank - 3) : min(total, rank + 2)]

        return MyRankResponse(
            rank=rank,
            total_users=total,
            percentile=round_half_up((1 - rank / total) * 100),
            nearby_users=nearby,
        )

    async def get_badges(self, user_id: str) -> BadgesResponse:
        user = await self._get_user(user_id)
        completed = self.db.execute(
            select(
                Pickup.completed_at,
                func.coalesce(Pickup.actual_weight, Pickup.estimated_weight),
            )
            .where(Pickup.user_id == user_id, Pickup.status == PickupStatus.COMPLETED)
            .order_by(Pickup.completed_at.asc())
        ).all()

        # When each cumulative threshold was first crossed
        weight_reached: List[tuple] = []
        running = 0.0
        for completed_at, weight in completed:
            running += weight or 0
            weight_reached.append((running, completed_at))

        def unlocked_at(kind: str, threshold: int) -> Optional[datetime]:
            if kind == "pickups":
                return completed[threshold - 1][0] if len(completed) >= threshold else None
            if kind == "weight":
                for total, reached_at in weight_reached:
                    if total >= threshold:
                        return reached_at
            return None

        badges = []
        for badge_id, name, description, kind, threshold in BADGE_RULES:
            if kind == "level":
                unlocked = user.level >= threshold
                reached_at = None
            else:
                reached_at = unlocked_at(kind, threshold)
                unlocked = reached_at is not None
            badges.append(
                Badge(
                    id=badge_id,
                    name=name,
                    description=description,
                    unlocked=unlocked,
                    unlocked_at=reached_at,
                )
            )

        return BadgesResponse(
            badges=badges,
            total_unlocked=sum(1 for badge in badges if badge.unlocked),
            total_badges=len(badges),
        )

    async def award_points(self, request: AwardPointsRequest) -> PointsBalanceResponse:
        user = await self._get_user(request.user_id)
        previous_level = user.level
        reason = request.reason or "admin_award"

        transaction = await self.points.adjust(user.id, request.points, reason)
        self.db.commit()
        balance = transaction.balance_after
        new_level = level_for(balance)

        try:
            notification_events.notify_points_earned(
                self.db, user.id, request.points, request.reason
            )
            if new_level > previous_level:
                notification_events.notify_level_up(self.db, user.id, new_level)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Points notification failed for user {user.id}: {e}")

        return PointsBalanceResponse(
            user_id=user.id,
            points=balance,
            level=new_level,
            delta=request.points,
            reason=reason,
        )

    async def redeem(self, user_id: str, request: RedeemRequest) -> RedeemResponse:
        transaction = await self.points.redeem(
            user_id, request.points_cost, f"redeem:{request.reward_id}"
        )
        self.db.commit()
        logger.info(
            f"User {user_id} redeemed {request.reward_id} for {request.points_cost} points"
        )
        return RedeemResponse(
            reward_id=request.reward_id,
            points_deducted=request.points_cost,
            remaining_points=transaction.balance_after,
        )


def get_rewards_service(db: Session = Depends(get_sync_session)) -> RewardsService:
    return RewardsService(db)
