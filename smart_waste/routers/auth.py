from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, status

from smart_waste.config.settings import settings
from smart_waste.middlewares.auth_middleware import AuthState, get_current_user
from smart_waste.schemas.auth_schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from smart_waste.services.auth_service import AuthService, get_auth_service
from smart_waste.utils.responses import ResponseBuilder

auth_router = APIRouter()


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    register_request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a citizen, industry or pickup agent account"""
    auth_response = await auth_service.register(register_request)

    return ResponseBuilder.success(
        request=request,
        data=auth_response.model_dump(by_alias=True),
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@auth_router.post("/login")
async def login(
    request: Request,
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Login with email and password; returns a bearer token"""
    auth_response = await auth_service.login(
        login_request.email, login_request.password
    )

    return ResponseBuilder.success(
        request=request,
        data=auth_response.model_dump(by_alias=True),
        message="Login successful",
    )


@auth_router.post("/forgot-password")
async def forgot_password(
    request: Request,
    forgot_request: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Start a password reset.

    The reset link is logged. Outside production the raw token is also
    returned so the flow can be exercised without email delivery.
    """
    raw_token, reset_url = await auth_service.forgot_password(forgot_request.email)

    data = None
    if settings.ENVIRONMENT != "production":
        data = {"resetToken": raw_token, "resetUrl": reset_url}

    return ResponseBuilder.success(
        request=request,
        data=data,
        message="Password reset link generated",
    )


@auth_router.post("/reset-password/{token}")
async def reset_password(
    request: Request,
    reset_request: ResetPasswordRequest,
    token: Annotated[str, Path(description="Raw reset token from the reset link")],
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_response = await auth_service.reset_password(token, reset_request)

    return ResponseBuilder.success(
        request=request,
        data=auth_response.model_dump(by_alias=True),
        message="Password reset successful",
    )


@auth_router.get("/profile")
async def get_profile(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get current authenticated user information"""
    user = await auth_service.get_profile(current_user.user_id)

    return ResponseBuilder.success(
        request=request,
        data=user.model_dump(by_alias=True),
        message="User information retrieved",
    )
