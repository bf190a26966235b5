"""Request monitoring middleware for logging and correlation ids."""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.monitoring.logger import get_performance_logger


class RequestMonitoringMiddleware(BaseHTTPMiddleware):
    """Times every request and tags the response with an X-Request-ID."""

    def __init__(self, app):
        super().__init__(app)
        self.performance_logger = get_performance_logger()

    async def dispatch(self, request: Request, call_next):
        # Honour a caller-supplied id so logs can be joined across services
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        client_ip = self._get_client_ip(request)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            self.performance_logger.log_request(
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration=time.time() - start_time,
                request_id=request_id,
                ip_address=client_ip,
                error=str(e)
            )
            raise

        duration = time.time() - start_time
        self.performance_logger.log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=duration,
            request_id=request_id,
            ip_address=client_ip,
            response_size=response.headers.get("content-length")
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}"
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"
