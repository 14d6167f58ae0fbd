"""Exception handlers for the FastAPI application.

Every error leaves the API with the same body:

    {"error": "Human-readable error message"}

- ApiError: status of its ErrorKind.
- RequestValidationError: 400 with the message of the first failing rule.
- anything else: 500 with a generic message; details only go to the log.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import ApiError, ErrorKind

logger = logging.getLogger(__name__)

# pydantic error types for a body that is not a JSON object at all
_BODY_SHAPE_ERRORS = {"model_attributes_type", "model_type", "dict_type"}


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def first_error_message(errors) -> str:
    """Pick the message of the first failing rule in a pydantic error list."""
    if not errors:
        return "Invalid request"
    err = errors[0]
    err_type = err.get("type", "")
    loc = [str(part) for part in err.get("loc", ()) if part != "body"]
    if err_type == "validation":
        return err.get("msg", "Invalid request")
    if err_type == "json_invalid":
        return "Invalid JSON body"
    if err_type in _BODY_SHAPE_ERRORS and not loc:
        return "Request body must be a JSON object"
    if err_type == "missing" and not loc:
        return "Request body is required"
    where = ".".join(loc[1:] if loc and loc[0] in ("query", "path") else loc)
    return f"Invalid value for '{where}': {err.get('msg', 'invalid')}" if where else err.get("msg", "Invalid request")


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI application."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        log = logger.error if exc.kind is ErrorKind.INTERNAL else logger.warning
        log(
            "%s on %s %s: %s",
            exc.kind.value,
            request.method,
            request.url.path,
            exc.message,
        )
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = first_error_message(exc.errors())
        logger.warning(
            "validation on %s %s: %s",
            request.method,
            request.url.path,
            message,
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
