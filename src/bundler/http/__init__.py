"""
=============================================================================
HTTP MODULE
=============================================================================

The request/response surface shared with the external router:

    request.py       HTTPRequest + validator / Accept-Language parsing
    response.py      HTTPResponse, ResponseBuilder, HTTP-date helpers
    status_codes.py  HTTPStatus enum
    mime_types.py    Content-Type handling for bundled text

=============================================================================
"""

from .request import HTTPRequest
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    parse_http_date,
    not_found,
    method_not_allowed,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import content_type_with_charset, is_text_type, resolve_content_type

__all__ = [
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "parse_http_date",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "HTTPStatus",
    "content_type_with_charset",
    "is_text_type",
    "resolve_content_type",
]
