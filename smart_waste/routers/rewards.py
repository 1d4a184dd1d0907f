from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from smart_waste.middlewares.auth_middleware import (
    AuthState,
    get_current_user,
    require_admin,
)
from smart_waste.schemas.rewards_schemas import AwardPointsRequest, RedeemRequest
from smart_waste.services.rewards_service import RewardsService, get_rewards_service
from smart_waste.utils.responses import ResponseBuilder

rewards_router = APIRouter()


@rewards_router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    limit: int = Query(10, ge=1, le=100),
    rewards_service: RewardsService = Depends(get_rewards_service),
):
    leaderboard = await rewards_service.get_leaderboard(limit=limit)

    return ResponseBuilder.success(
        request=request,
        data=[entry.model_dump(by_alias=True) for entry in leaderboard],
        message="Leaderboard retrieved",
    )


@rewards_router.get("/my-rank")
async def get_my_rank(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    rewards_service: RewardsService = Depends(get_rewards_service),
):
    rank = await rewards_service.get_my_rank(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data=rank.model_dump(by_alias=True),
        message="Rank retrieved",
    )


@rewards_router.get("/badges")
async def get_badges(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    rewards_service: RewardsService = Depends(get_rewards_service),
):
    badges = await rewards_service.get_badges(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data=badges.model_dump(by_alias=True),
        message="Badges retrieved",
    )


@rewards_router.post("/award-points")
async def award_points(
    request: Request,
    award_request: AwardPointsRequest,
    current_user: Annotated[AuthState, Depends(require_admin)],
    rewards_service: RewardsService = Depends(get_rewards_service),
):
    balance = await rewards_service.award_points(award_request)

    return ResponseBuilder.success(
        request=request,
        data=balance.model_dump(by_alias=True),
        message=f"Awarded {award_request.points} points",
    )


@rewards_router.post("/redeem")
async def redeem_reward(
    request: Request,
    redeem_request: RedeemRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    rewards_service: RewardsService = Depends(get_rewards_service),
):
    """Spend points on a reward; fails when the balance does not cover it"""
    redemption = await rewards_service.redeem(current_user.user_id, redeem_request)

    return ResponseBuilder.success(
        request=request,
        data=redemption.model_dump(by_alias=True),
        message="Reward redeemed successfully",
    )
