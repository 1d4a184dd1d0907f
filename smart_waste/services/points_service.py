from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from smart_waste.db.models import PointTransaction, User
from smart_waste.utils.errors import NotFoundError, ValidationError
from smart_waste.utils.logging import get_logger

logger = get_logger()

POINTS_PER_LEVEL = 100


def level_for(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


class PointsService:
    """
    Atomic point balance changes with an append-only ledger.

    Balances are never read-modify-written in Python; every change is a single
    UPDATE so concurrent awards cannot lose increments. Callers own the commit,
    so the ledger row lands in the same transaction as the primary write.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    async def adjust(
        self,
        user_id: str,
        delta: int,
        reason: str,
        pickup_id: Optional[str] = None,
    ) -> PointTransaction:
        """Add (or with a negative delta, remove) points, flooring the balance at zero."""
        new_points = case((User.points + delta < 0, 0), else_=User.points + delta)
        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(points=new_points, level=new_points // POINTS_PER_LEVEL + 1)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        return self._record(user_id, delta, reason, pickup_id)

    async def redeem(self, user_id: str, cost: int, reason: str) -> PointTransaction:
        """Deduct points only if the balance covers the cost."""
        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.points >= cost)
            .values(
                points=User.points - cost,
                level=(User.points - cost) // POINTS_PER_LEVEL + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            exists = self.db.execute(
                select(User.id).where(User.id == user_id)
            ).scalar_one_or_none()
            if not exists:
                raise NotFoundError("User not found", "USER_NOT_FOUND")
            raise ValidationError(
                "Insufficient points to redeem this reward", "INSUFFICIENT_POINTS"
            )

        return self._record(user_id, -cost, reason, None)

    def _record(
        self, user_id: str, delta: int, reason: str, pickup_id: Optional[str]
    ) -> PointTransaction:
        balance = self.db.execute(
            select(User.points).where(User.id == user_id)
        ).scalar_one()
        transaction = PointTransaction(
            user_id=user_id,
            delta=delta,
            reason=reason,
            pickup_id=pickup_id,
            balance_after=balance,
        )
        self.db.add(transaction)
        logger.info(
            f"Points {delta:+d} for user {user_id} ({reason}), balance {balance}"
        )
        return transaction
