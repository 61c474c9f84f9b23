from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from examhall.core.exceptions import ExamSessionError
from examhall.schemas.response import ErrorResponse, ErrorDetail
from examhall.utils.exam_timer import utcnow
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_SERVER_ERROR",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error_response = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
        timestamp=utcnow().isoformat(),
        path=str(request.url),
        request_id=_request_id(request)
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(error_response))

async def exam_session_exception_handler(request: Request, exc: ExamSessionError):
    logger.warning(
        f"[{_request_id(request)}] {exc.code} ({exc.reason}): {exc.detail}",
        extra={"request_id": _request_id(request)}
    )
    return _error_response(request, exc.status_code, exc.code, exc.detail, exc.to_details())

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning(f"[{_request_id(request)}] HTTP {exc.status_code}: {message}", extra={"request_id": _request_id(request)})
    response = _error_response(request, exc.status_code, _get_error_code(exc.status_code), message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[{_request_id(request)}] Validation error: {exc.errors()}", extra={"request_id": _request_id(request)})
    return _error_response(
        request, 422, "VALIDATION_ERROR", "Request validation failed", {"validation_errors": exc.errors()}
    )

async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[{_request_id(request)}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": _request_id(request)})
    return _error_response(
        request, 500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred", {"error_type": type(exc).__name__}
    )
