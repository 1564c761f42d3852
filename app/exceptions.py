"""Error responses: every failure leaves the API as {"error": "<message>"} plus optional keys."""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


class APIError(HTTPException):
    """HTTPException whose body carries machine-readable keys next to the message,
    e.g. APIError(403, "...", requiresEmailVerification=True, email=...)."""

    def __init__(self, status_code: int, detail: str, headers: dict | None = None, **extra):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.extra = extra


def create_error_response(message: str, **extra) -> dict:
    return {"error": message, **extra}


def first_validation_message(errors: list[dict]) -> str:
    """One sentence for the first failing field, the way clients show it."""
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    field = loc[-1] if loc else "body"
    if err.get("type") == "missing":
        return f"{field} is required"
    if err.get("type") == "json_invalid":
        return "Invalid JSON body"
    msg = str(err.get("msg") or "Invalid request")
    if msg.startswith(_VALUE_ERROR_PREFIX):
        return msg[len(_VALUE_ERROR_PREFIX):]
    return f"{field}: {msg}" if loc else msg


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    extra = getattr(exc, "extra", None) or {}
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), **extra),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=create_error_response(first_validation_message(exc.errors())))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=create_error_response("Internal Server Error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
