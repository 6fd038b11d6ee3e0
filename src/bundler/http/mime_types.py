"""
=============================================================================
CONTENT TYPES
=============================================================================

Assets declare their MIME type at registration ("application/javascript",
"text/css", ...). Bundled output is always UTF-8 text, so text-based types
are served with an explicit charset:

    application/javascript   →  application/javascript; charset=utf-8
    text/css                 →  text/css; charset=utf-8
    image/svg+xml            →  image/svg+xml; charset=utf-8
    application/wasm         →  application/wasm            (unchanged)

A browser that guesses the charset may mangle non-ASCII strings injected
by the localizer, which is why the parameter is added rather than left out.

=============================================================================
"""

from pathlib import Path
from typing import Optional


JAVASCRIPT = "application/javascript"
CSS = "text/css"

# Extension → MIME type for the formats that are typically bundled.
MIME_TYPES = {
    ".js": JAVASCRIPT,
    ".mjs": JAVASCRIPT,
    ".css": CSS,
    ".html": "text/html",
    ".htm": "text/html",
    ".json": "application/json",
    ".svg": "image/svg+xml",
    ".txt": "text/plain",
    ".xml": "application/xml",
}

# Shorthands accepted wherever a content type is configured (manifests, CLI).
ALIASES = {
    "js": JAVASCRIPT,
    "javascript": JAVASCRIPT,
    "css": CSS,
}

DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "application/x-javascript",
    "text/javascript",
    "image/svg+xml",
}


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Guess a MIME type from a file extension.

        >>> get_mime_type("site.css")
        'text/css'
        >>> get_mime_type("blob.bin")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)
    return MIME_TYPES.get(path.suffix.lower(), default or DEFAULT_MIME_TYPE)


def resolve_content_type(value: str) -> str:
    """Expand a shorthand ("js", "css") to a MIME type; pass others through."""
    return ALIASES.get(value.strip().lower(), value.strip())


def is_text_type(mime_type: str) -> bool:
    """True when the MIME type (parameters ignored) is text-based."""
    base = mime_type.split(";")[0].strip().lower()
    if base.startswith("text/"):
        return True
    return base in _TEXT_APPLICATION_TYPES


def content_type_with_charset(mime_type: str, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for an asset.

    Leaves the value alone if it already carries a charset or is binary.

        >>> content_type_with_charset("text/css")
        'text/css; charset=utf-8'
    """
    if "charset=" in mime_type.lower() or not is_text_type(mime_type):
        return mime_type
    return f"{mime_type}; charset={charset}"
