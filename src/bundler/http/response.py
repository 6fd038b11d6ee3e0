"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Responses for asset requests are built with a fluent builder and handed
back to the router, which serialises them.

=============================================================================
ASSET RESPONSE SHAPES
=============================================================================

    200 OK                              304 Not Modified
    ──────────────────────────          ──────────────────────────
    Content-Type: text/css; ...         ETag: "9f86d081884c7d65"
    ETag: "9f86d081884c7d65"            Cache-Control: public, no-cache
    Last-Modified: Wed, 01 ...          (no body)
    Cache-Control: public, no-cache
    Vary: Accept-Language  (localized)
    <compiled body>

=============================================================================
CACHE-CONTROL POLICY
=============================================================================

    public, no-cache                  client stores the body but revalidates
                                      every time (ETag round-trip, 304)

    public, max-age=N                 client reuses without asking for N s

    public, max-age=31536000,         URL carries the content fingerprint
    immutable                         (?v=...), so it never changes

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written by the router.

    Plain data container; use ResponseBuilder to assemble one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 304 Not Modified"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "bundler") -> bytes:
        """
        Serialise status line, headers and body.

        Content-Length and Date are filled in when missing. A 304 never
        carries a body, even if one was set by mistake.
        """
        response_headers = dict(self.headers)
        body = b"" if self.status == HTTPStatus.NOT_MODIFIED else self.body

        if "Content-Length" not in response_headers and self.status != HTTPStatus.NOT_MODIFIED:
            response_headers["Content-Length"] = str(len(body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css; charset=utf-8")
            .etag('"abc"')
            .no_cache_revalidate()
            .body(css)
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS / HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """JSON body with a matching Content-Type."""
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    def etag(self, etag: str) -> "ResponseBuilder":
        """Set ETag. Pass the quoted form, e.g. '"abc123"'."""
        return self.header("ETag", etag)

    def last_modified(self, when: datetime) -> "ResponseBuilder":
        return self.header("Last-Modified", format_http_date(when))

    # =========================================================================
    # CACHING
    # =========================================================================

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        """Cache-Control: public, max-age=N."""
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def no_cache_revalidate(self) -> "ResponseBuilder":
        """
        Cache-Control: public, no-cache.

        Despite the name, no-cache lets clients keep the body; they must
        revalidate (If-None-Match) before each reuse.
        """
        self._headers["Cache-Control"] = "public, no-cache"
        return self

    def immutable(self, max_age: int = 31536000) -> "ResponseBuilder":
        """For fingerprinted URLs whose content can never change."""
        self._headers["Cache-Control"] = f"public, max-age={max_age}, immutable"
        return self

    def vary(self, *header_names: str) -> "ResponseBuilder":
        existing = [h.strip() for h in self._headers.get("Vary", "").split(",") if h.strip()]
        for name in header_names:
            if name not in existing:
                existing.append(name)
        self._headers["Vary"] = ", ".join(existing)
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# DATE HELPERS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always GMT.

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP-date into an aware UTC datetime.

    Returns None for anything unparseable; a bad If-Modified-Since header
    is treated as absent (RFC 7232 §3.3).
    """
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 with a small JSON body."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep the message generic unless errors are explicitly exposed."""
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .json({"error": message})
        .no_cache_revalidate()
        .build())
