from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
import traceback
from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class AppError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"
    default_error_code: str = "APP_ERROR"
    error_type: str = "APP_ERROR"

    def __init__(self, message: str = "", error_code: str = ""):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code


class ValidationError(AppError):
    """Missing or malformed input that pydantic could not catch."""

    default_message = "Invalid request data"
    default_error_code = "VALIDATION_ERROR"
    error_type = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Custom exception for authentication errors."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed"
    default_error_code = "AUTH_ERROR"
    error_type = "AUTHENTICATION_ERROR"


class AuthorizationError(AppError):
    """Custom exception for authorization errors."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"
    default_error_code = "AUTHZ_ERROR"
    error_type = "AUTHORIZATION_ERROR"


class NotFoundError(AppError):
    """Custom exception for resource not found errors."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"
    default_error_code = "NOT_FOUND"
    error_type = "NOT_FOUND_ERROR"


class ConflictError(AppError):
    """Duplicate period, tracking ID or other uniqueness violation. Retryable."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"
    default_error_code = "CONFLICT"
    error_type = "CONFLICT_ERROR"


class InvalidStateError(AppError):
    """Illegal lifecycle transition."""

    default_message = "Operation not allowed in the current state"
    default_error_code = "INVALID_STATE"
    error_type = "INVALID_STATE_ERROR"


def _format_validation_errors(errors) -> list:
    formatted_errors = []
    for error in errors:
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        formatted_errors.append(
            {
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            }
        )
    return formatted_errors


def setup_error_handlers(app: FastAPI):
    """Setup custom error handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
            meta={"http_status": exc.status_code},
        )

    """
    RequestValidationError is a sub-class of Pydantic's ValidationError.
    """

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.error(f"Request Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=_format_validation_errors(exc.errors()),
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: PydanticValidationError
    ):
        logger.error(f"Pydantic Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Data validation failed",
            error_code="INTERNAL_VALIDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(AppError)
    async def app_exception_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_type}: {exc.message}")
        else:
            logger.warning(f"{exc.error_type}: {exc.message} ({exc.error_code})")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            meta={"error_type": exc.error_type},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")

        # Don't expose internal database errors to users
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "SQLALCHEMY_ERROR"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions"""
        logger.error(f"Unhandled Exception: {str(exc)}")
        logger.error(f"Traceback: {traceback.format_exc()}")

        return ResponseBuilder.error(
            request=request,
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "INTERNAL_ERROR"},
        )
