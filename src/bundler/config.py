"""
=============================================================================
BUNDLER CONFIGURATION
=============================================================================

One dataclass holds every knob the pipeline and the asset endpoint read.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Code:        BundlerConfig(source_root="web", ...)             │
    │   2. Environment: BUNDLER_SOURCE_ROOT=web python -m bundler ...     │
    │   3. Defaults:    the field defaults below                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs at startup (use_asset_pipeline calls it) so a bad value
stops the process before the first request instead of during one.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Tuple

from .errors import ConfigurationError


_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class BundlerConfig:
    """
    Configuration for the asset pipeline and AssetMiddleware.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SOURCES
    # ─────────────────────────────────────────────────────────────────────

    source_root: str = "."
    """Directory source file identifiers are resolved against."""

    read_workers: int = 4
    """Threads used to read an asset's source files concurrently."""

    separator: str = "\n"
    """
    Inserted between source files when concatenating. A newline keeps the
    last token of one file from fusing with the first token of the next.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOCALIZATION
    # ─────────────────────────────────────────────────────────────────────

    default_locale: str = "en"
    """Locale used for localized assets when the request names none."""

    locale_query_param: str = "culture"
    """Query parameter that selects a locale (?culture=fr)."""

    supported_locales: Tuple[str, ...] = ()
    """
    Locales localized assets compile for, on top of the default locale and
    the locales their catalogs declare. A request for any other locale is
    served the default locale, so clients cannot create cache variants.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP CACHING
    # ─────────────────────────────────────────────────────────────────────

    cache_max_age: int = 0
    """
    max-age for plain asset URLs. 0 means "public, no-cache": clients keep
    the body and revalidate with the ETag on every use.
    """

    version_query_param: str = "v"
    """Query parameter carrying the content fingerprint (?v=...)."""

    immutable_max_age: int = 31536000
    """max-age for URLs whose ?v= matches the current fingerprint."""

    expose_errors: bool = False
    """Put compile error details in 500 bodies. Development only."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    @classmethod
    def from_env(cls) -> "BundlerConfig":
        """
        Create configuration from environment variables.

            BUNDLER_SOURCE_ROOT      source directory (default: .)
            BUNDLER_DEFAULT_LOCALE   fallback locale (default: en)
            BUNDLER_LOCALES          comma-separated supported locales
            BUNDLER_CACHE_MAX_AGE    seconds, 0 = revalidate (default: 0)
            BUNDLER_READ_WORKERS     reader threads (default: 4)
            BUNDLER_EXPOSE_ERRORS    1/true to show compile errors
            BUNDLER_LOG_LEVEL        DEBUG/INFO/... (default: INFO)
            BUNDLER_LOG_FORMAT       text/json (default: text)
        """
        try:
            return cls(
                source_root=os.getenv("BUNDLER_SOURCE_ROOT", "."),
                default_locale=os.getenv("BUNDLER_DEFAULT_LOCALE", "en"),
                supported_locales=tuple(
                    locale.strip() for locale in os.getenv("BUNDLER_LOCALES", "").split(",") if locale.strip()
                ),
                cache_max_age=int(os.getenv("BUNDLER_CACHE_MAX_AGE", "0")),
                read_workers=int(os.getenv("BUNDLER_READ_WORKERS", "4")),
                expose_errors=os.getenv("BUNDLER_EXPOSE_ERRORS", "").strip().lower() in _TRUE_VALUES,
                log_level=os.getenv("BUNDLER_LOG_LEVEL", "INFO"),
                log_format=os.getenv("BUNDLER_LOG_FORMAT", "text"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid bundler environment setting: {e}") from e

    def validate(self) -> None:
        """Fail fast on values that would only break at request time."""
        if self.read_workers < 1:
            raise ConfigurationError("read_workers must be >= 1")

        if self.cache_max_age < 0:
            raise ConfigurationError("cache_max_age must be >= 0")

        if self.immutable_max_age < 0:
            raise ConfigurationError("immutable_max_age must be >= 0")

        if not self.default_locale.strip():
            raise ConfigurationError("default_locale must not be empty")

        for locale in self.supported_locales:
            if not isinstance(locale, str) or not locale.strip():
                raise ConfigurationError(f"Invalid entry in supported_locales: {locale!r}")

        if not self.locale_query_param or not self.version_query_param:
            raise ConfigurationError("query parameter names must not be empty")

        if self.locale_query_param == self.version_query_param:
            raise ConfigurationError("locale and version query parameters must differ")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Unknown log_level {self.log_level!r}")
