from typing import Any, Dict, List, Optional
from fastapi import status, Request
from fastapi.responses import JSONResponse
from smart_waste.schemas.response_schemas import (
    ApiResponse,
    PaginationMeta,
    ResponseStatus,
)


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


class ResponseBuilder:
    """Builder class for creating standardized responses"""

    @staticmethod
    def _render(response: ApiResponse, status_code: int) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=response.model_dump(by_alias=True, exclude_none=True),
        )

    @staticmethod
    def success(
        request: Request,
        data: Any = None,
        message: str = "Request successful",
        meta: Optional[Dict[str, Any]] = None,
        pagination: Optional[PaginationMeta] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> JSONResponse:
        """Create a success response"""
        response = ApiResponse(
            success=True,
            status=ResponseStatus.SUCCESS,
            message=message,
            data=data,
            meta=meta,
            pagination=pagination,
            path=str(request.url.path),
        )
        if _request_id(request):
            response.request_id = _request_id(request)
        return ResponseBuilder._render(response, status_code)

    @staticmethod
    def error(
        request: Request,
        message: str = "An error occurred",
        errors: Optional[List[Dict[str, Any]]] = None,
        error_code: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        data: Any = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """Create an error response"""
        response_meta = meta or {}
        if error_code:
            response_meta["error_code"] = error_code

        response = ApiResponse(
            success=False,
            status=ResponseStatus.ERROR,
            message=message,
            data=data,
            error=error_code,
            meta=response_meta if response_meta else None,
            errors=errors,
            path=str(request.url.path),
        )
        if _request_id(request):
            response.request_id = _request_id(request)
        return ResponseBuilder._render(response, status_code)

    @staticmethod
    def paginated(
        request: Request,
        data: List[Any],
        page: int,
        per_page: int,
        total: int,
        message: str = "Data retrieved successfully",
        meta: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """Create a paginated response"""
        total_pages = (total + per_page - 1) // per_page
        pagination = PaginationMeta(
            current_page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

        return ResponseBuilder.success(
            request=request,
            data=data,
            message=message,
            meta=meta,
            pagination=pagination,
        )
