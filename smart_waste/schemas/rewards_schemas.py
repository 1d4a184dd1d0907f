from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .camel_base_model import CamelCaseBaseModel as BaseModel


class LeaderboardEntry(BaseModel):
    id: str
    name: str
    points: int
    level: int
    pickups_completed: int = 0
    waste_recycled: float = 0


class RankedUser(BaseModel):
    id: str
    name: str
    points: int
    rank: int


class MyRankResponse(BaseModel):
    rank: int
    total_users: int
    percentile: int
    nearby_users: List[RankedUser] = Field(default_factory=list)


class Badge(BaseModel):
    id: str
    name: str
    description: str
    unlocked: bool
    unlocked_at: Optional[datetime] = None


class BadgesResponse(BaseModel):
    badges: List[Badge]
    total_unlocked: int
    total_badges: int


class AwardPointsRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    points: int = Field(..., gt=0)
    reason: Optional[str] = Field(None, max_length=100)


class RedeemRequest(BaseModel):
    reward_id: str = Field(..., min_length=1)
    points_cost: int = Field(..., gt=0)


class PointsBalanceResponse(BaseModel):
    user_id: str
    points: int
    level: int
    delta: int
    reason: Optional[str] = None


class RedeemResponse(BaseModel):
    reward_id: str
    points_deducted: int
    remaining_points: int

