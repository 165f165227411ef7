from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from contextvars import ContextVar

import logging
import re
import time
import uuid

# Id of the request being served, read by log.ContextualFilter
request_id_context: ContextVar[str] = ContextVar("request_id", default="N/A")

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Accept SDK-forwarded ids only if they are short and log-safe
FORWARDED_ID = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def _request_id(request: Request) -> str:
    forwarded = request.headers.get(REQUEST_ID_HEADER)
    if forwarded and FORWARDED_ID.match(forwarded):
        return forwarded
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with one id and echoes it in the response headers."""

    @classmethod
    def request_id_context(cls):
        return request_id_context

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)
        token = request_id_context.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s failed", request.method, request.url.path)
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path,
                        response.status_code, (time.perf_counter() - started) * 1000)
            return response
        finally:
            request_id_context.reset(token)
