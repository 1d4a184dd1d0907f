from fastapi import APIRouter

from .auth import auth_router
from .feedback import feedback_router
from .health import health_router
from .industry_waste import industry_waste_router
from .notifications import notifications_router
from .pickup import pickup_router
from .rewards import rewards_router
from .user import user_router
from .waste import waste_router
from .waste_tracking import waste_tracking_router

main_router = APIRouter()

# Include resource routers
main_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
main_router.include_router(user_router, prefix="/user", tags=["User"])
main_router.include_router(pickup_router, prefix="/pickup", tags=["Pickups"])
main_router.include_router(waste_router, prefix="/waste", tags=["Waste Classification"])
main_router.include_router(
    industry_waste_router, prefix="/industry/waste", tags=["Industry Declarations"]
)
main_router.include_router(
    waste_tracking_router, prefix="/waste-tracking", tags=["Waste Tracking"]
)
main_router.include_router(feedback_router, prefix="/feedback", tags=["Feedback"])
main_router.include_router(
    notifications_router, prefix="/notifications", tags=["Notifications"]
)
main_router.include_router(rewards_router, prefix="/rewards", tags=["Rewards"])
main_router.include_router(health_router, prefix="/health", tags=["Health Checks"])
