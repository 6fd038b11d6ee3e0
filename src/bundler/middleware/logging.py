"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per asset request on the "bundler.access" logger, with timing and
a request id that is echoed back as X-Request-ID.

    text:  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /site.js" 304 0 0.41ms id=1f3a9c2e
    json:  {"request_id": "1f3a9c2e", "method": "GET", "path": "/site.js", ...}

A request id supplied by an upstream proxy (X-Request-ID) is reused so
the asset log lines up with the proxy's.

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


# Configure separately from the "bundler" tree, e.g. to ship to a file:
#   logging.getLogger("bundler.access").addHandler(file_handler)
logger = logging.getLogger("bundler.access")

_MAX_REQUEST_ID_LENGTH = 64


@dataclass
class AccessLogEntry:
    """A single access log record."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    etag: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line with the request id appended."""
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms id={self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging.

    Args:
        log_format: "text" (Apache style) or "json".
        include_request_id: Add X-Request-ID to responses.
        log_level: Level for successful requests. 5xx responses are always
                   logged at ERROR.
        skip_paths: Paths that are never logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = self._request_id(request)
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms) id={request_id}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path in self.skip_paths:
            return response

        entry = AccessLogEntry(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query="&".join(f"{k}={v}" for k, values in request.query_params.items() for v in values),
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=_content_length(response),
            etag=response.headers.get("ETag", ""),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.ERROR if HTTPStatus(response.status).is_server_error else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return response

    @staticmethod
    def _request_id(request: HTTPRequest) -> str:
        supplied = request.get_header("X-Request-ID").strip()
        if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH and supplied.isprintable():
            return supplied
        return uuid.uuid4().hex[:8]


def _content_length(response: HTTPResponse) -> int:
    # HEAD responses carry the full length in the header but no body
    declared = response.headers.get("Content-Length")
    if declared is not None and declared.isdigit():
        return int(declared)
    return len(response.body)
