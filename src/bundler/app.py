"""
=============================================================================
COMPOSITION ROOT
=============================================================================

Wires a Pipeline, the asset middleware and the ambient middleware together
and hands the result to whatever HTTP router the application uses.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       use_asset_pipeline()                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. build (or take) a Pipeline                                     │
    │   2. configure(pipeline)          ← application registers assets    │
    │   3. pipeline.freeze()            ← configuration phase ends        │
    │   4. LoggingMiddleware + extras + AssetMiddleware                   │
    │   5. router.add_route(route, handler, method="GET"/"HEAD")          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

USAGE:
    def configure(pipeline):
        pipeline.add_js("/bundle.js", "a.js", "b.js")
        pipeline.add_css("/site.css", "site.css")

    app = use_asset_pipeline(configure, config=BundlerConfig(source_root="static"),
                             router=router)

Without a router, app.handle(request) dispatches directly and answers 404
for unknown paths.

Configuration errors (duplicate routes, empty source lists, bad settings)
propagate out of use_asset_pipeline so startup fails immediately.

=============================================================================
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .asset import Asset
from .config import BundlerConfig
from .errors import ConfigurationError
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .middleware import (
    AssetMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    not_found_handler,
)
from .pipeline import Pipeline


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

Handler = Callable[[HTTPRequest], HTTPResponse]


def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure logging for the process.

    With log_format="json" the access logger writes bare JSON lines so log
    shippers can parse them; everything else keeps the text format.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Unknown log level {level!r}")

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    access = logging.getLogger("bundler.access")
    if log_format == "json" and not access.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        access.addHandler(handler)
        access.propagate = False


class AssetApplication:
    """
    The configured asset endpoint.

    Attributes:
        pipeline: The frozen asset registry.
        middleware: The AssetMiddleware serving it.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        config: Optional[BundlerConfig] = None,
        middleware: Sequence[Middleware] = (),
    ):
        self.pipeline = pipeline
        self.config = config or pipeline.config
        self.middleware = AssetMiddleware(pipeline, self.config)

        # Everything that wraps an asset request, outermost first.
        self._outer = MiddlewarePipeline()
        self._outer.add(LoggingMiddleware(log_format=self.config.log_format))
        self._outer.use(*middleware)

        chain = MiddlewarePipeline().use(*self._outer, self.middleware)
        self._dispatch = chain.wrap(not_found_handler)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Serve any request: asset routes are answered, others get 404."""
        return self._dispatch(request)

    def handler_for(self, asset: Asset) -> Handler:
        """Request handler bound to a single asset, for router registration."""
        def serve(request: HTTPRequest) -> HTTPResponse:
            return self.middleware.handle(request, asset)
        return self._outer.wrap(serve)

    def routes(self) -> List[Tuple[str, Handler]]:
        """(route, handler) pairs in registration order."""
        return [(asset.route, self.handler_for(asset)) for asset in self.pipeline.assets]

    def mount(self, router: Any) -> Any:
        """
        Register every asset route on `router` for GET and HEAD.

        `router` only needs add_route(path, handler, method=...).
        """
        for route, handler in self.routes():
            for method in ("GET", "HEAD"):
                router.add_route(route, handler, method=method)
        logger.info(f"Mounted {len(self.pipeline)} asset route(s)")
        return router

    def as_middleware(self) -> Middleware:
        """The AssetMiddleware, for use in an existing middleware chain."""
        return self.middleware

    def close(self) -> None:
        self.pipeline.close()

    def __enter__(self) -> "AssetApplication":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def use_asset_pipeline(
    configure: Callable[[Pipeline], Any],
    config: Optional[BundlerConfig] = None,
    router: Any = None,
    pipeline: Optional[Pipeline] = None,
    middleware: Sequence[Middleware] = (),
) -> AssetApplication:
    """
    Build, configure and freeze an asset pipeline, then expose it.

    Args:
        configure: Called once with the pipeline to register assets.
        config: Settings; defaults to the pipeline's, else BundlerConfig().
        router: Optional router with add_route(path, handler, method=...).
        pipeline: Use an existing (unfrozen) pipeline instead of a new one.
        middleware: Extra middleware placed between logging and assets.

    Raises:
        ConfigurationError: Invalid settings or asset registrations.
    """
    if config is None:
        config = pipeline.config if pipeline is not None else BundlerConfig()
    config.validate()

    if pipeline is None:
        pipeline = Pipeline(config=config)
    if pipeline.is_frozen:
        raise ConfigurationError("Pipeline is already frozen; configure it through use_asset_pipeline")

    configure(pipeline)
    pipeline.freeze()

    app = AssetApplication(pipeline, config, middleware)
    if router is not None:
        app.mount(router)
    return app
