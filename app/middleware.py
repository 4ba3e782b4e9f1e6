from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import logging
import time
from typing import AsyncIterator, Callable

logger = logging.getLogger(__name__)


def _is_event_stream(response: Response) -> bool:
    return response.headers.get("content-type", "").startswith("text/event-stream")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging.

    Server-sent event responses are logged twice: when the first byte is
    ready and again when the stream ends, with the number of events sent.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time

        if _is_event_stream(response):
            logger.info(
                f"Stream opened: {response.status_code} | "
                f"Time to first byte: {process_time:.4f}s | "
                f"Path: {request.url.path}"
            )
            response.body_iterator = self._log_stream(
                response.body_iterator, request.url.path, start_time
            )
        else:
            logger.info(
                f"Response: {response.status_code} | "
                f"Time: {process_time:.4f}s | "
                f"Path: {request.url.path}"
            )

        response.headers["X-Process-Time"] = str(process_time)

        return response

    async def _log_stream(self, body: AsyncIterator[bytes], path: str, start_time: float) -> AsyncIterator[bytes]:
        events = 0
        try:
            async for chunk in body:
                if isinstance(chunk, str):
                    chunk = chunk.encode("utf-8")
                events += chunk.count(b"\n\n")
                yield chunk
        finally:
            logger.info(
                f"Stream closed: {events} events | "
                f"Total: {time.time() - start_time:.4f}s | "
                f"Path: {path}"
            )
