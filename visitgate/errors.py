import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class VisitGateError(Exception):
    status_code = 500
    code = "visitgate_error"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(VisitGateError):
    status_code = 404
    code = "not_found"


class ValidationError(VisitGateError):
    status_code = 400
    code = "validation_error"


class ConflictError(VisitGateError):
    status_code = 409
    code = "conflict"


class StateError(VisitGateError):
    """An illegal lifecycle transition was attempted."""

    status_code = 409
    code = "invalid_state"


class CapacityError(StateError):
    code = "capacity_reached"


class ConcurrentUpdateError(StateError):
    code = "concurrent_update"


class InfrastructureError(VisitGateError):
    """A storage collaborator failed; the outcome could not be determined."""

    status_code = 503
    code = "service_unavailable"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(InfrastructureError)
    async def infrastructure_exception_handler(
        request: Request, exc: InfrastructureError
    ):
        logger.error("Infrastructure failure on %s: %s", request.url.path, exc.cause)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                exc.code,
                "Service temporarily unavailable; the request could not be evaluated",
                None,
            ),
        )

    @app.exception_handler(VisitGateError)
    async def visitgate_exception_handler(request: Request, exc: VisitGateError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
