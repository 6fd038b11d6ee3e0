"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the asset endpoint speaks.

    ┌────────────────────────────────────────────────────────────────────┐
    │                   STATUS CODES USED FOR ASSETS                     │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  200   │ Fresh body, current ETag                                 │
    │  204   │ Empty answer from downstream handlers                    │
    │  304   │ Client validator matches, no body                        │
    │  404   │ No asset registered for the route                        │
    │  405   │ Asset routes only answer GET and HEAD                    │
    │  500   │ Source missing or a processor failed                     │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    NOT_MODIFIED = 304          # Cached version is still valid

    # 4xx CLIENT ERRORS
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (e.g. "Not Modified")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_server_error(self) -> bool:
        """True for 5xx. The access log reports these at ERROR."""
        return self >= 500


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
