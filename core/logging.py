"""
Logging setup and request logging middleware.

- configure_logging() applies LOG_LEVEL and a single line format to the root logger.
- The middleware adds X-Request-ID header (UUID4) to each response and request.state.
- Logs method, path, status, latency and request-id.
"""
from starlette.requests import Request
import logging
import time
import uuid
from typing import Callable

logger = logging.getLogger("milk.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)

async def request_logging_middleware(request: Request, call_next: Callable):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.time()
    response = await call_next(request)
    latency = (time.time() - start) * 1000.0
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request_id, request.method, request.url.path, response.status_code, latency,
    )
    return response
