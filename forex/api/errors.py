import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from forex.api.responses import envelope
from forex.exceptions import ForexError

logger = logging.getLogger(__name__)


def _trace_headers(request: Request, extra: dict = None) -> dict:
    headers = dict(extra or {})
    trace_id = getattr(request.state, "trace_id", None)
    if trace_id:
        headers["X-Trace-ID"] = trace_id
    return headers


def _describe(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
    if location:
        return f"{'.'.join(location)}: {error.get('msg')}"
    return str(error.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ForexError)
    async def forex_error_handler(request: Request, exc: ForexError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        extra = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(exc.message, exc.data),
            headers=_trace_headers(request, extra),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = _describe(errors[0]) if errors else "invalid request body"
        return JSONResponse(status_code=400, content=envelope(message), headers=_trace_headers(request))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(str(exc.detail)),
            headers=_trace_headers(request, getattr(exc, "headers", None)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error trace_id=%s", getattr(request.state, "trace_id", None))
        return JSONResponse(status_code=500, content=envelope("internal server error"),
                            headers=_trace_headers(request))
