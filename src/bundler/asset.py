"""
=============================================================================
ASSETS
=============================================================================

An Asset is one routable bundle: a route, a content type, an ordered list
of source files and an ordered processor chain. It owns its CompileCache.

=============================================================================
LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   CONFIGURING ──────────────────► FROZEN                            │
    │   add_processor()        freeze() or first get_output()             │
    │   minify_javascript()                                                │
    │   localize() ...          builder calls now raise                    │
    │                           ConfigurationError                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
get_output(locale)
=============================================================================

    1. read every source (concurrently, declaration order kept)
    2. fingerprint = hash(sources + chain settings + locale if localized)
    3. cache hit on (variant, fingerprint)     → return it
    4. miss → run the chain (coalesced)        → install atomically
    5. failure → previous artifact stays, error propagates to the caller

Sources are read on every access. That read is the invalidation check:
there is no file watcher, an edit is picked up by the next request.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, FrozenSet, Optional, Sequence, Tuple

from .cache import CompileCache, CompiledArtifact, compute_source_fingerprint
from .errors import (
    BundlerError,
    ConfigurationError,
    EmptySourceListError,
    ProcessingError,
    ProcessingErrorKind,
)
from .processors import (
    CodeSettings,
    CssMinifier,
    CssSettings,
    JavaScriptMinifier,
    Localizer,
    Lookup,
    Processor,
    ProcessorChain,
    ProcessingContext,
)
from .sources import FileSourceProvider, SourceReader


logger = logging.getLogger(__name__)


class Asset:
    """
    A registered, routable bundle of source files.

    Normally created through Pipeline.add(); the builder methods return the
    asset so calls chain:

        pipeline.add("/site.js", "application/javascript", ["a.js", "b.js"]) \\
            .minify_javascript() \\
            .localize(catalog)
    """

    def __init__(
        self,
        route: str,
        content_type: str,
        source_files: Sequence[str],
        reader: Optional[SourceReader] = None,
        separator: str = "\n",
        default_locale: str = "en",
        localized: bool = False,
        supported_locales: Sequence[str] = (),
    ):
        if not route:
            raise ConfigurationError("Asset route must not be empty")
        if not content_type or not content_type.strip():
            raise ConfigurationError(f"Asset {route!r} needs a content type")
        if isinstance(source_files, str):
            source_files = [source_files]
        if not source_files:
            raise EmptySourceListError(route)

        self._route = route
        self.content_type = content_type.strip()
        self.source_files: Tuple[str, ...] = tuple(source_files)
        self.reader = reader or SourceReader(FileSourceProvider("."))
        self.separator = separator
        self.default_locale = default_locale

        self._localized = localized
        self._locales = {locale.strip().lower() for locale in supported_locales if locale.strip()}
        self._lookups: list = []
        self._pre: list = []
        self._post: list = []
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._cache = CompileCache(route)

    @property
    def route(self) -> str:
        return self._route

    @property
    def cache(self) -> CompileCache:
        return self._cache

    # =========================================================================
    # BUILDER (configuration phase only)
    # =========================================================================

    def _check_configurable(self) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Asset {self._route!r} is frozen; processors can only be added during configuration"
            )

    def add_processor(self, step: Processor) -> "Asset":
        """Append a post-processor (runs once on the concatenated output)."""
        self._check_configurable()
        if not isinstance(step, Processor):
            raise ConfigurationError(f"{step!r} is not a Processor")
        self._post.append(step)
        return self

    def add_pre_processor(self, step: Processor) -> "Asset":
        """Append a pre-processor (runs once per source file)."""
        self._check_configurable()
        if not isinstance(step, Processor):
            raise ConfigurationError(f"{step!r} is not a Processor")
        self._pre.append(step)
        return self

    def minify_javascript(self, settings: Optional[CodeSettings] = None) -> "Asset":
        return self.add_processor(JavaScriptMinifier(settings))

    def minify_css(self, settings: Optional[CssSettings] = None) -> "Asset":
        return self.add_processor(CssMinifier(settings))

    def localize(
        self,
        lookup: Lookup,
        escape: Optional[Callable[[str], str]] = None,
        locales: Sequence[str] = (),
    ) -> "Asset":
        """
        Substitute {{key}} tokens per request locale.

        The asset compiles for `locales`, the locales the lookup declares
        through a `locales` attribute (StringCatalog does) and the default
        locale. Other requested locales get the default locale's output.
        """
        self.add_processor(Localizer(lookup, escape))
        self._locales.update(locale.strip().lower() for locale in locales if locale.strip())
        self._lookups.append(lookup)
        self._localized = True
        return self

    @property
    def pre_processors(self) -> Tuple[Processor, ...]:
        return tuple(self._pre)

    @property
    def post_processors(self) -> Tuple[Processor, ...]:
        return tuple(self._post)

    @property
    def is_localized(self) -> bool:
        """True when output differs per locale."""
        return self._localized or any(step.locale_aware for step in self._pre + self._post)

    def freeze(self) -> None:
        """End the configuration phase for this asset."""
        with self._freeze_lock:
            if not self._frozen:
                self._frozen = True
                logger.debug(f"Asset {self._route} frozen with {len(self._pre)} pre / {len(self._post)} post processors")

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # COMPILE / CACHE
    # =========================================================================

    def variant_for(self, locale: Optional[str]) -> Optional[str]:
        """
        Normalize a requested locale to the cache variant it selects.

        Non-localized assets have a single variant whatever the request asks
        for, so they return None.
        """
        if not self.is_localized:
            return None
        return self.match_locale(locale) or self.default_locale.lower()

    @property
    def locales(self) -> FrozenSet[str]:
        """Every locale this asset compiles a variant for (lower-case)."""
        known = set(self._locales)
        known.add(self.default_locale.lower())
        for lookup in self._lookups:
            known.update(locale.lower() for locale in getattr(lookup, "locales", ()))
        return frozenset(known)

    def match_locale(self, locale: Optional[str]) -> Optional[str]:
        """
        The known locale serving a requested one, or None.

        Matching is case-insensitive and walks up parent cultures, so
        "fr-CA" selects "fr" when only "fr" is known.
        """
        candidate = (locale or "").strip().lower()
        known = self.locales
        while candidate:
            if candidate in known:
                return candidate
            if "-" not in candidate:
                break
            candidate = candidate.rsplit("-", 1)[0]
        return None

    def get_output(self, locale: Optional[str] = None) -> CompiledArtifact:
        """
        Return the current compiled artifact, compiling if sources changed.

        Raises:
            SourceNotFoundError: a source file is missing or unreadable.
            ProcessingError: a processor step failed.
        """
        if not self._frozen:
            self.freeze()

        locale = self.variant_for(locale)
        variant = locale or ""

        sources = self.reader.read_all(self.source_files)
        chain = ProcessorChain(self._pre, self._post, self.separator)
        fingerprint = compute_source_fingerprint(sources, chain.settings_key(), locale)

        def compile_output() -> bytes:
            label = f"{self._route} [{locale}]" if locale else self._route
            logger.info(f"Compiling {label} ({len(sources)} files, {len(chain)} processors)")
            start = time.perf_counter()
            context = ProcessingContext(route=self._route, content_type=self.content_type, locale=locale)
            try:
                output = chain.run(sources, context)
                body = _encode(output)
            except BundlerError as e:
                logger.error(f"Compile of {label} failed: {e}")
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(f"Compiled {label}: {len(body)} bytes in {duration_ms:.1f}ms")
            return body

        return self._cache.get_or_compile(variant, fingerprint, compile_output, locale=locale)

    def current_artifact(self, locale: Optional[str] = None) -> Optional[CompiledArtifact]:
        """The cached artifact for `locale`, without reading or compiling."""
        return self._cache.peek(self.variant_for(locale) or "")

    def versioned_url(self, locale: Optional[str] = None, param: str = "v") -> str:
        """
        Cache-busting URL, e.g. "/site.js?v=3f2a...".

        Compiles if needed, so the fingerprint is always current.
        """
        artifact = self.get_output(locale)
        return f"{self._route}?{param}={artifact.content_fingerprint}"

    def __repr__(self) -> str:
        return f"<Asset {self._route} {self.content_type} files={len(self.source_files)}>"


def _encode(output: str) -> bytes:
    """UTF-8 body of a compile; lone surrogates from a processor fail the compile."""
    try:
        return output.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ProcessingError(
            f"Output is not encodable as UTF-8: {e.reason} at position {e.start}",
            step="encode",
            kind=ProcessingErrorKind.TRANSFORM_FAILED,
            cause=e,
        ) from e
