"""Domain exceptions and the JSON error envelope for the HTTP layer."""
import logging
import uuid

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CurriculumError(ValueError):
    """Caller programming error: invalid curriculum size, lesson key or track."""


class ProgressStoreError(RuntimeError):
    """The raw progress store returned something that cannot be read."""


class NotEligibleError(Exception):
    """Certificate issuance refused; carries the verdict that refused it."""

    def __init__(self, verdict):
        self.verdict = verdict
        super().__init__(f"learner is not eligible for {verdict.certificate_kind.value}")


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    status_code: int,
    details=None,
) -> JSONResponse:
    payload = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code, content=payload)


async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(request, code="http_error", message=str(exc.detail), status_code=exc.status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        request,
        code="validation_error",
        message="Request validation failed",
        status_code=422,
        details=exc.errors(),
    )


async def curriculum_exception_handler(request: Request, exc: CurriculumError):
    return error_response(request, code="curriculum_error", message=str(exc), status_code=422)


async def not_eligible_exception_handler(request: Request, exc: NotEligibleError):
    # Lesson keys only; scores never leave the engine through this path.
    return error_response(
        request,
        code="not_eligible",
        message=str(exc),
        status_code=409,
        details={"reasons_if_ineligible": sorted(exc.verdict.reasons_if_ineligible)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception | request_id=%s", get_request_id(request), exc_info=exc)
    return error_response(request, code="internal_error", message="Internal server error", status_code=500)


async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id")
    request.state.request_id = incoming or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["x-request-id"] = request.state.request_id
    return response
