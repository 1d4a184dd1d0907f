from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_waste.config.settings import settings
from smart_waste.db.db import create_tables, seed_admin
from smart_waste.utils.logging import get_logger
from smart_waste.routers import main_router
from smart_waste.routers.health import health_router
from smart_waste.utils.errors import setup_error_handlers
from smart_waste.middlewares import (
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    AuthMiddleware,
)

# Initialize the logger
logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(f"{settings.NAME} is starting up ({settings.ENVIRONMENT})...")
    create_tables()
    seed_admin()
    yield
    logger.info(f"{settings.NAME} is shutting down...")


def create_application() -> FastAPI:
    """Initialize the FastAPI application with settings and lifespan events."""
    application = FastAPI(
        title=settings.NAME, version=settings.VERSION, lifespan=lifespan
    )

    # Setup error handlers
    setup_error_handlers(application)

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "authorization", "X-Request-ID"],
    )

    # Add custom middlewares; the last one added runs first
    application.add_middleware(
        SecurityHeadersMiddleware, production=settings.ENVIRONMENT == "production"
    )
    application.add_middleware(AuthMiddleware)
    application.add_middleware(RequestIDMiddleware)

    # Routers
    application.include_router(main_router, prefix=settings.API_PREFIX)
    application.include_router(health_router, prefix="/health", tags=["Health Checks"])

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smart_waste.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_config=None,
        log_level=None,
    )
