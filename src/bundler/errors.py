"""
=============================================================================
BUNDLER ERROR TAXONOMY
=============================================================================

Every failure the asset pipeline can produce has a class here. The classes
carry metadata as attributes so callers never have to parse messages.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        WHERE ERRORS SURFACE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ConfigurationError      startup, Pipeline.add / Asset builder     │
    │   ├─ DuplicateRouteError  route already registered                  │
    │   └─ EmptySourceListError asset declared with no source files       │
    │                                                                      │
    │   SourceNotFoundError     compile time, one request fails           │
    │   ProcessingError         compile time, one request fails           │
    │                                                                      │
    │   (unresolved localization keys are NOT errors, see LookupMiss in   │
    │    processors/localize.py)                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Configuration errors abort startup. Compile errors are turned into a 500
response by AssetMiddleware; the next request tries again from scratch.

=============================================================================
"""

from enum import Enum
from typing import Optional


class BundlerError(Exception):
    """
    Base class for all bundler errors.

    `status_code` is the HTTP status the middleware answers with when the
    error escapes a compile.
    """

    status_code: int = 500


# =============================================================================
# CONFIGURATION PHASE
# =============================================================================

class ConfigurationError(BundlerError):
    """Invalid pipeline configuration. Raised eagerly, never at request time."""


class DuplicateRouteError(ConfigurationError):
    """A second asset was registered under an existing route."""

    def __init__(self, route: str):
        super().__init__(f"An asset is already registered for route {route!r}")
        self.route = route


class EmptySourceListError(ConfigurationError):
    """An asset was registered without any source files."""

    def __init__(self, route: str):
        super().__init__(f"Asset {route!r} must have at least one source file")
        self.route = route


# =============================================================================
# COMPILE PHASE
# =============================================================================

class SourceNotFoundError(BundlerError):
    """
    A source file could not be read.

    Attributes:
        identifier: The source file identifier as registered on the asset.
        reason: Short machine-friendly reason ("missing", "unreadable",
                "outside root", "not a file", "undecodable").
    """

    def __init__(self, identifier: str, reason: str = "missing"):
        super().__init__(f"Source file {identifier!r} is {reason}" if reason != "missing"
                         else f"Source file {identifier!r} not found")
        self.identifier = identifier
        self.reason = reason


class ProcessingErrorKind(Enum):
    """Why a processor step failed."""
    SYNTAX_ERROR = "syntax_error"          # Input rejected by a minifier
    TRANSFORM_FAILED = "transform_failed"  # Any other step failure


class ProcessingError(BundlerError):
    """
    A processor step failed.

    The chain stops at the first failing step. `step` names it and `cause`
    holds the underlying exception when there was one.
    """

    def __init__(
        self,
        message: str,
        step: str = "",
        kind: ProcessingErrorKind = ProcessingErrorKind.TRANSFORM_FAILED,
        cause: Optional[BaseException] = None,
        source: Optional[str] = None,
        line: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.kind = kind
        self.cause = cause
        self.source = source
        self.line = line

    def __str__(self) -> str:
        parts = []
        if self.step:
            parts.append(f"[{self.step}]")
        if self.source:
            parts.append(f"{self.source}:")
        if self.line is not None:
            parts.append(f"line {self.line}:")
        parts.append(self.message)
        return " ".join(parts)
