"""
=============================================================================
HTTP REQUEST MODEL
=============================================================================

The router that sits in front of the bundler owns the socket and the
parsing. What reaches us is a small, already-parsed request object. This
module defines that object and the header helpers the asset endpoint needs
for cache validation and locale negotiation.

=============================================================================
CONDITIONAL REQUEST HEADERS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    VALIDATORS SENT BY CLIENTS                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   If-None-Match: "a3f5b2c9", W/"0815"      list of entity tags      │
    │   If-None-Match: *                         any current version      │
    │                                                                      │
    │   If-Modified-Since: Wed, 15 Jun 2024 10:00:00 GMT                  │
    │                                                                      │
    │   RFC 7232 §6: when If-None-Match is present, If-Modified-Since     │
    │   MUST be ignored. The middleware enforces that order.              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LOCALE NEGOTIATION
=============================================================================

    Accept-Language: fr-CA, fr;q=0.9, en;q=0.5

    accept_language → ["fr-CA", "fr", "en"]   (ordered by q, stable)

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, List
from urllib.parse import parse_qs, urlsplit, unquote

from .response import parse_http_date


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request as handed over by the router.

    Header names are stored lower-case (RFC 7230: they are case-insensitive),
    so lookups never need to normalise.
    """

    method: str                          # GET, HEAD, ...
    path: str                            # Request path without query string
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: Optional[Dict[str, str]] = None,
        client_address: tuple[str, int] = ("", 0),
    ) -> "HTTPRequest":
        """
        Build a request from a request-target such as "/app.js?v=abc".

        The path is percent-decoded; the query string is split into lists
        the same way parse_qs does it (blank values kept).
        """
        parts = urlsplit(target)
        return cls(
            method=method,
            path=unquote(parts.path) or "/",
            headers=dict(headers or {}),
            query_params=parse_qs(parts.query, keep_blank_values=True),
            client_address=client_address,
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or `default`."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    # =========================================================================
    # CONDITIONAL REQUEST HELPERS
    # =========================================================================

    @property
    def if_none_match(self) -> Optional[List[str]]:
        """
        Entity tags from If-None-Match, or None when the header is absent.

        Weak prefixes are kept ("W/\"x\"") so callers can decide how to
        compare; "*" is returned as the single element ["*"].
        """
        raw = self.headers.get("if-none-match")
        if raw is None:
            return None
        raw = raw.strip()
        if raw == "*":
            return ["*"]
        return _split_entity_tags(raw)

    @property
    def if_modified_since(self) -> Optional[datetime]:
        """If-Modified-Since as an aware UTC datetime; None if absent/invalid."""
        raw = self.headers.get("if-modified-since")
        if not raw:
            return None
        return parse_http_date(raw)

    @property
    def accept_language(self) -> List[str]:
        """
        Language tags from Accept-Language, best first.

        Tags with q=0 are dropped, "*" is ignored. Equal weights keep their
        header order.
        """
        raw = self.headers.get("accept-language", "")
        weighted = []
        for position, item in enumerate(raw.split(",")):
            pieces = [p.strip() for p in item.split(";")]
            tag = pieces[0]
            if not tag or tag == "*":
                continue
            quality = 1.0
            for param in pieces[1:]:
                if param.lower().startswith("q="):
                    try:
                        quality = float(param[2:])
                    except ValueError:
                        quality = 0.0
            if quality > 0:
                weighted.append((-quality, position, tag))
        return [tag for _, _, tag in sorted(weighted)]


def _split_entity_tags(raw: str) -> List[str]:
    """
    Split a comma separated entity-tag list.

    Commas may legally appear inside quoted tags, so this walks the string
    instead of calling split(",").
    """
    tags = []
    current = []
    in_quotes = False
    for char in raw:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == "," and not in_quotes:
            tag = "".join(current).strip()
            if tag:
                tags.append(tag)
            current = []
        else:
            current.append(char)
    tag = "".join(current).strip()
    if tag:
        tags.append(tag)
    return tags
