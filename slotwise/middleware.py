import time
import uuid

from fastapi import Request

from slotwise.logger import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_MS = 500


async def add_request_id_and_process_time(request: Request, call_next):
    """Tag every request with an X-Request-ID and report how long it took."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (time.time() - start_time) * 1000
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} failed after {process_time:.2f}ms: {str(e)}"
        )
        raise

    process_time = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
    if process_time > SLOW_REQUEST_MS:
        logger.warning(f"[{request_id}] Slow request: {request.method} {request.url.path} took {process_time:.2f}ms")
    return response
