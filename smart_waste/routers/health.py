from fastapi import APIRouter, Request

from smart_waste.config.settings import settings
from smart_waste.utils.responses import ResponseBuilder

health_router = APIRouter()


@health_router.get("")
async def health_check(request: Request):
    """
    Basic health check endpoint

    Returns application status and basic system information
    """
    return ResponseBuilder.success(
        request=request,
        data={
            "status": "healthy",
            "service": settings.NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        },
        message="Service is running",
    )
