import logging
import time
import traceback

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Polled by liveness checks every few seconds
QUIET_PATHS = {"/api/health"}

class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status and latency"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"💥 {request.method} {target} from {client} failed after {elapsed_ms:.2f}ms: {e}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        log(f"{request.method} {target} {response.status_code} {elapsed_ms:.2f}ms ({client})")

        return response
