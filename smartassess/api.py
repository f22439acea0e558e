"""
Shared API utilities for the SmartAssess service.

This module provides:
- The standard success envelope used by the endpoints
- Exception handlers mapping engine errors to HTTP responses
"""

from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from smartassess.common.exceptions import ErrorCode, SmartAssessError
from smartassess.common.logger import app_logger

logger = app_logger.getChild("api")

# HTTP status per error code; anything unlisted is a 500
STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_EVALUATED: status.HTTP_409_CONFLICT,
    ErrorCode.NOTHING_TO_GRADE: status.HTTP_409_CONFLICT,
    ErrorCode.NO_SUITABLE_QUESTIONS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NO_ELIGIBLE_ANSWERS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NO_SUBMISSIONS: status.HTTP_404_NOT_FOUND,
}


def status_for(error: SmartAssessError) -> int:
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def smartassess_exception_handler(request: Request, exc: SmartAssessError) -> JSONResponse:
    """
    Render an engine error as ``{"error": {...}}`` with the mapped status code.

    Args:
        request: The incoming request
        exc: The engine error

    Returns:
        A JSON response with the error payload
    """
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request body validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Validation error",
                "details": {"errors": error_details}
            }
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SmartAssessError, smartassess_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)


class APIResponse:
    """Standard API response structure"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        """
        Create a success response.

        Args:
            data: Response data
            message: Success message

        Returns:
            Response dictionary
        """
        return {
            "status": "success",
            "message": message,
            "data": data
        }
