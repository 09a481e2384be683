# =============================================================================
# File: app/core/exceptions.py
# Description: Maps the EventHub error taxonomy onto HTTP responses.
#              Every domain error body carries "detail" and "error" (the
#              exception class name) plus fields specific to its family.
# =============================================================================

import logging
from typing import Any, Callable, Dict, Type

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette import status
from starlette.responses import JSONResponse

from app.common.exceptions.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    ResourceNotFoundError,
    ValidationError,
)
from app.config.api_config import get_api_config
from app.core.fastapi_types import FastAPI
from app.event.exceptions import (
    DualWriteFailure,
    LifecycleError,
    PreconditionFailed,
    StoreUnavailable,
)

logger = logging.getLogger("eventhub.exceptions")

Extras = Callable[[Exception], Dict[str, Any]]


def _no_extras(exc: Exception) -> Dict[str, Any]:
    return {}


def _field(exc: Exception) -> Dict[str, Any]:
    field = getattr(exc, "field", None)
    return {"field": field} if field else {}


def _lifecycle(exc: Exception) -> Dict[str, Any]:
    extras = {
        "current_state": exc.current,
        "target_state": exc.target,
        "allowed_transitions": exc.allowed,
    }
    if isinstance(exc, PreconditionFailed):
        extras["reason"] = exc.reason
    return extras


def _dual_write(exc: Exception) -> Dict[str, Any]:
    # Neither store holds a partial result, so the same request can be sent again
    return {"operation": exc.operation, "retryable": True}


def _store(exc: Exception) -> Dict[str, Any]:
    return {"store": exc.store}


# Starlette picks the handler by walking the exception's MRO, so the more
# specific families (LifecycleError) win over their base (DomainError)
ERROR_STATUS: Dict[Type[Exception], tuple] = {
    ValidationError: (status.HTTP_400_BAD_REQUEST, logging.INFO, _field),
    ResourceNotFoundError: (status.HTTP_404_NOT_FOUND, logging.DEBUG, _no_extras),
    AuthorizationError: (status.HTTP_403_FORBIDDEN, logging.WARNING, _no_extras),
    LifecycleError: (status.HTTP_400_BAD_REQUEST, logging.INFO, _lifecycle),
    DomainError: (status.HTTP_400_BAD_REQUEST, logging.INFO, _no_extras),
    ConflictError: (status.HTTP_409_CONFLICT, logging.WARNING, _no_extras),
    DualWriteFailure: (status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR, _dual_write),
    StoreUnavailable: (status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR, _store),
}


def _domain_handler(status_code: int, level: int, extras: Extras):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        logger.log(level, f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc}")
        body = {"detail": str(exc), "error": type(exc).__name__, **extras(exc)}
        return JSONResponse(status_code=status_code, content=body)
    return handle


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are 422, distinct from the 400 of a domain validation failure"""
    errors = []
    for error in exc.errors():
        entry = {"loc": error["loc"], "msg": error["msg"], "type": error["type"]}
        if "ctx" in error:
            entry["ctx"] = {k: str(v) if isinstance(v, Exception) else v for k, v in error["ctx"].items()}
        errors.append(entry)
    logger.info(f"{request.method} {request.url.path} -> 422 ({len(errors)} field errors)")
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} -> 500 unhandled: {exc}", exc_info=True)
    if get_api_config().is_production:
        content = {"detail": "An internal server error occurred."}
    else:
        content = {"detail": str(exc), "error": type(exc).__name__}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def setup_exception_handlers(app: FastAPI) -> None:
    for exc_type, (status_code, level, extras) in ERROR_STATUS.items():
        app.add_exception_handler(exc_type, _domain_handler(status_code, level, extras))
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
