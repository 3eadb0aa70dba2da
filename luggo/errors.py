"""Error taxonomy shared by the server and the client sync layer."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from luggo.logging_config import get_logger

logger = get_logger(__name__)


class LuggoError(Exception):
    """Base exception for LUGGO errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_type: str = "luggo_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error_type, "detail": self.message}


class ValidationError(LuggoError):
    """Raised when a request is malformed; nothing has been applied."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, error_type: str = "validation_error", field: str | None = None):
        super().__init__(message, error_type)
        self.field = field


class NotFoundError(LuggoError):
    """Raised when a referenced review or place does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, error_type: str = "not_found"):
        super().__init__(message, error_type)


class AuthRequiredError(LuggoError):
    """Raised when an action needs a valid identity. Clients show the login prompt."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required", error_type: str = "auth_required"):
        super().__init__(message, error_type)


class ForbiddenError(LuggoError):
    """Raised when an authenticated user lacks the privilege for an action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str, error_type: str = "forbidden"):
        super().__init__(message, error_type)


class ConflictError(LuggoError):
    """Raised on an identifier collision race. Handled internally by the place registry."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, error_type: str = "conflict"):
        super().__init__(message, error_type)


class TransientInfraError(LuggoError):
    """Raised when the store (or, client side, the network) is unavailable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Store unavailable", error_type: str = "store_unavailable"):
        super().__init__(message, error_type)


ERROR_TYPES_BY_STATUS: dict[int, type[LuggoError]] = {
    status.HTTP_400_BAD_REQUEST: ValidationError,
    422: ValidationError,
    status.HTTP_401_UNAUTHORIZED: AuthRequiredError,
    status.HTTP_403_FORBIDDEN: ForbiddenError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ConflictError,
}


def error_from_response(status_code: int, payload: dict | None) -> LuggoError:
    """Rebuild a typed error from an HTTP error response (client side)."""
    payload = payload or {}
    error_type = payload.get("error") or "http_error"
    message = payload.get("detail") or f"Request failed with status {status_code}"
    if not isinstance(message, str):
        message = str(message)
    error_cls = ERROR_TYPES_BY_STATUS.get(status_code)
    if error_cls is None:
        if status_code >= 500:
            return TransientInfraError(message, error_type)
        return LuggoError(message, error_type)
    return error_cls(message, error_type)


def register_exception_handlers(app: FastAPI) -> None:
    """Render the taxonomy as ``{"error": code, "detail": message}`` bodies."""

    @app.exception_handler(LuggoError)
    async def luggo_error_handler(request: Request, exc: LuggoError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.error_type, detail=exc.message)
        else:
            logger.info("request_rejected", path=request.url.path, error=exc.error_type)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def store_unavailable_handler(request: Request, exc: Exception):
        logger.error("store_unavailable", path=request.url.path, error=str(exc))
        err = TransientInfraError()
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("write_conflict", path=request.url.path, error=str(exc.orig))
        err = ConflictError("The write conflicted with a concurrent change, retry it", "write_conflict")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
