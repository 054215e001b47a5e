import os
import time
from collections import defaultdict
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)

MAX_REQUESTS_PER_WINDOW = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))

# In-memory rate limiting storage
rate_limit_data = defaultdict(lambda: {"count": 0, "reset_time": time.time() + WINDOW_SECONDS})

# Endpoints that should be exempt from rate limiting
RATE_LIMIT_EXEMPT_PATHS = {
    "/api/health",
}

class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiting per client address"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        try:
            self._check_rate_limit(request)
        except HTTPException as e:
            logger.warning(f"Rate limit exceeded for IP: {self._client_ip(request)}")
            return JSONResponse(
                status_code=e.status_code,
                content={"success": False, "error": e.detail}
            )

        return await call_next(request)

    @staticmethod
    def _client_ip(request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _check_rate_limit(self, request: Request):
        """Check rate limit for the requesting IP"""
        ip = self._client_ip(request)
        now = time.time()
        record = rate_limit_data[ip]

        # Reset counter if time window has passed
        if now > record["reset_time"]:
            record["count"] = 0
            record["reset_time"] = now + WINDOW_SECONDS

        if record["count"] >= MAX_REQUESTS_PER_WINDOW:
            raise HTTPException(
                status_code=429,
                detail="Too many requests from this IP, please try again later."
            )

        record["count"] += 1
