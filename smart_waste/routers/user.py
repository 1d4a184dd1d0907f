from typing import Annotated

from fastapi import APIRouter, Depends, Request

from smart_waste.middlewares.auth_middleware import AuthState, get_current_user
from smart_waste.schemas.auth_schemas import UpdateProfileRequest
from smart_waste.services.user_service import UserService, get_user_service
from smart_waste.utils.responses import ResponseBuilder

user_router = APIRouter()


@user_router.get("/profile")
async def get_profile(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    user_service: UserService = Depends(get_user_service),
):
    """Profile with pickup statistics"""
    profile = await user_service.get_profile(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data=profile.model_dump(by_alias=True),
        message="Profile retrieved successfully",
    )


@user_router.put("/profile")
async def update_profile(
    request: Request,
    update_request: UpdateProfileRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    user_service: UserService = Depends(get_user_service),
):
    profile = await user_service.update_profile(current_user.user_id, update_request)

    return ResponseBuilder.success(
        request=request,
        data=profile.model_dump(by_alias=True),
        message="Profile updated successfully",
    )
