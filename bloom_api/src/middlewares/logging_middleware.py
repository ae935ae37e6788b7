import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("bloom.api")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add a request id and log HTTP requests
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate request ID for tracing
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"❌ [{request_id}] {request.method} {request.url.path} failed after "
                f"{round(process_time * 1000, 2)}ms: {type(e).__name__}: {e}"
            )
            raise

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"📥 [{request_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"({round(process_time * 1000, 2)}ms)"
        )
        return response


def get_request_id(request: Request) -> str:
    """
    Get the request ID from the request state
    """
    return getattr(request.state, 'request_id', 'unknown')
