import logging
import time
import uuid

from fastapi import FastAPI, Request

from forex.api.deps import client_ip

logger = logging.getLogger(__name__)


def register_access_log(app: FastAPI) -> None:
    @app.middleware("http")
    async def trace_middleware(request: Request, call_next):
        trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
        request.state.trace_id = trace_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Trace-ID"] = trace_id
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "access trace_id=%s method=%s path=%s status=%s duration_ms=%.2f ip=%s",
            trace_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip(request),
        )
        return response
