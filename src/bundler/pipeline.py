"""
=============================================================================
PIPELINE (ASSET REGISTRY)
=============================================================================

The Pipeline maps routes to Assets. It is built explicitly by the
application's composition root and handed to AssetMiddleware; there is no
process-global instance.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           ROUTE TABLE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "/site.js"    ──►  Asset(js,  [a.js, b.js],  [JavaScriptMinifier]) │
    │   "/site.css"   ──►  Asset(css, [base.css],    [CssMinifier])        │
    │   "/i18n.js"    ──►  Asset(js,  [strings.js],  [Localizer])          │
    │                                                                      │
    │   - routes always start with "/"                                    │
    │   - matching is case-insensitive ("/Site.JS" is "/site.js")         │
    │   - append-only; frozen once serving starts                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

USAGE:
    pipeline = Pipeline(config=BundlerConfig(source_root="static"))

    pipeline.add_js("/site.js", "js/a.js", "js/b.js")
    pipeline.add_css("/site.css", "css/base.css")
    pipeline.add("/i18n.js", "application/javascript", ["js/i18n.js"]) \\
        .localize(StringCatalog({"fr": {"greeting": "Bonjour"}}))

    pipeline.freeze()

=============================================================================
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .asset import Asset
from .config import BundlerConfig
from .errors import ConfigurationError, DuplicateRouteError, EmptySourceListError
from .http.mime_types import CSS, JAVASCRIPT, resolve_content_type
from .processors import CodeSettings, CssSettings, Lookup
from .sources import FileSourceProvider, SourceReader


logger = logging.getLogger(__name__)


def normalize_route(route: str) -> str:
    """Ensure a leading "/" and strip surrounding whitespace."""
    if not isinstance(route, str) or not route.strip():
        raise ConfigurationError("Route must be a non-empty string")
    route = route.strip()
    if any(c in route for c in "?#"):
        raise ConfigurationError(f"Route {route!r} must not contain a query or fragment")
    if not route.startswith("/"):
        route = "/" + route
    return route


class Pipeline:
    """
    Registry of assets keyed by route.

    Args:
        reader: Shared SourceReader. Defaults to reading files under
                config.source_root.
        config: Pipeline settings; defaults to BundlerConfig().
    """

    def __init__(self, reader: Optional[SourceReader] = None, config: Optional[BundlerConfig] = None):
        self.config = config or BundlerConfig()
        self.reader = reader or SourceReader(
            FileSourceProvider(self.config.source_root),
            max_workers=self.config.read_workers,
        )
        self._assets: Dict[str, Asset] = {}
        self._frozen = False

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add(self, route: str, content_type: str, source_files: Sequence[str]) -> Asset:
        """
        Register an asset.

        Raises:
            DuplicateRouteError: route already registered.
            EmptySourceListError: no source files.
            ConfigurationError: pipeline frozen, bad route or content type.
        """
        if self._frozen:
            raise ConfigurationError(f"Pipeline is frozen; cannot register {route!r}")

        route = normalize_route(route)
        key = route.lower()
        if key in self._assets:
            raise DuplicateRouteError(route)

        if isinstance(source_files, str):
            source_files = [source_files]
        if not source_files:
            raise EmptySourceListError(route)
        if not isinstance(content_type, str) or not content_type.strip():
            raise ConfigurationError(f"Asset {route!r} needs a content type")

        asset = Asset(
            route,
            resolve_content_type(content_type),
            source_files,
            reader=self.reader,
            separator=self.config.separator,
            default_locale=self.config.default_locale,
            supported_locales=self.config.supported_locales,
        )
        self._assets[key] = asset
        logger.debug(f"Registered {route} ({asset.content_type}, {len(asset.source_files)} files)")
        return asset

    def add_js(self, route: str, *source_files: str, settings: Optional[CodeSettings] = None) -> Asset:
        """Register a JavaScript bundle with minification."""
        return self.add(route, JAVASCRIPT, list(source_files)).minify_javascript(settings)

    def add_css(self, route: str, *source_files: str, settings: Optional[CssSettings] = None) -> Asset:
        """Register a stylesheet bundle with minification."""
        return self.add(route, CSS, list(source_files)).minify_css(settings)

    # =========================================================================
    # BULK HELPERS
    # =========================================================================
    # Evaluated immediately: every asset has its processor attached when the
    # call returns.

    def minify_javascript(self, assets: Iterable[Asset], settings: Optional[CodeSettings] = None) -> List[Asset]:
        return [asset.minify_javascript(settings) for asset in assets]

    def minify_css(self, assets: Iterable[Asset], settings: Optional[CssSettings] = None) -> List[Asset]:
        return [asset.minify_css(settings) for asset in assets]

    def localize(self, assets: Iterable[Asset], lookup: Lookup, escape=None, locales=()) -> List[Asset]:
        return [asset.localize(lookup, escape, locales) for asset in assets]

    # =========================================================================
    # LOOKUP
    # =========================================================================

    @property
    def assets(self) -> tuple:
        """Registered assets in registration order."""
        return tuple(self._assets.values())

    @property
    def routes(self) -> List[str]:
        return [asset.route for asset in self._assets.values()]

    def get(self, route: str) -> Optional[Asset]:
        """Find the asset for a request path, or None."""
        if not route:
            return None
        if not route.startswith("/"):
            route = "/" + route
        return self._assets.get(route.lower())

    def __contains__(self, route: str) -> bool:
        return self.get(route) is not None

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[Asset]:
        return iter(self.assets)

    # =========================================================================
    # PHASE
    # =========================================================================

    def freeze(self) -> None:
        """End the configuration phase: no more routes, no more processors."""
        if self._frozen:
            return
        self._frozen = True
        for asset in self._assets.values():
            asset.freeze()
        logger.info(f"Asset pipeline ready with {len(self._assets)} route(s)")

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def close(self) -> None:
        self.reader.close()
