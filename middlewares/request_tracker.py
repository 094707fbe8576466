import time
import logging
from fastapi import Request

logger = logging.getLogger("api.requests")


async def request_tracker_middleware(request: Request, call_next):
    """Log every API request with its status and duration."""
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception:
        response_time_ms = (time.time() - start_time) * 1000
        logger.exception(
            "%s %s failed after %.2fms",
            request.method,
            request.url.path,
            response_time_ms,
            extra={"path": request.url.path, "duration_ms": round(response_time_ms, 2)},
        )
        raise

    response_time_ms = (time.time() - start_time) * 1000
    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "%s %s -> %d (%.2fms)",
        request.method,
        request.url.path,
        response.status_code,
        response_time_ms,
        extra={
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(response_time_ms, 2),
        },
    )

    # Add response time header for debugging
    response.headers["X-Response-Time"] = f"{response_time_ms:.2f}ms"

    return response
