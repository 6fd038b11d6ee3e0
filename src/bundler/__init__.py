"""
=============================================================================
BUNDLER - In-Process Asset Pipeline
=============================================================================

Registers routable bundles of source files, runs them through an ordered
chain of processors (minification, localization) and serves the compiled
output with strong ETags and cache-aware headers.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    bundler/
    ├── pipeline.py        Pipeline: route → Asset registry
    ├── asset.py           Asset: builder + compile/cache lifecycle
    ├── cache.py           CompiledArtifact, CompileCache (single-flight)
    ├── sources.py         source providers, concurrent SourceReader
    ├── processors/        ProcessorChain, minifiers, localizer
    ├── middleware/        AssetMiddleware, LoggingMiddleware
    ├── http/              request/response model
    ├── app.py             use_asset_pipeline() composition root
    ├── manifest.py        JSON manifests for the CLI
    ├── config.py          BundlerConfig
    └── errors.py          exception taxonomy

=============================================================================
QUICK START
=============================================================================

    from bundler import BundlerConfig, StringCatalog, use_asset_pipeline
    from bundler.http import HTTPRequest

    def configure(pipeline):
        pipeline.add_js("/bundle.js", "js/a.js", "js/b.js")
        pipeline.add_css("/site.css", "css/site.css")
        pipeline.add("/i18n.js", "js", ["js/i18n.js"]) \\
            .localize(StringCatalog({"fr": {"greeting": "Bonjour"}}))

    app = use_asset_pipeline(configure, config=BundlerConfig(source_root="static"))

    response = app.handle(HTTPRequest.from_target("GET", "/bundle.js"))
    response.headers["ETag"]      # '"5d41402abc4b2a76b9719d911017c592"'

=============================================================================
"""

__version__ = "1.0.0"

from .app import AssetApplication, setup_logging, use_asset_pipeline
from .asset import Asset
from .cache import CompileCache, CompiledArtifact
from .config import BundlerConfig
from .errors import (
    BundlerError,
    ConfigurationError,
    DuplicateRouteError,
    EmptySourceListError,
    ProcessingError,
    ProcessingErrorKind,
    SourceNotFoundError,
)
from .middleware import AssetMiddleware, LoggingMiddleware
from .pipeline import Pipeline
from .processors import (
    CodeSettings,
    CssSettings,
    FunctionProcessor,
    Localizer,
    LookupMiss,
    Processor,
    StringCatalog,
    processor,
)
from .sources import FileSourceProvider, MemorySourceProvider, SourceReader

__all__ = [
    "__version__",
    "AssetApplication",
    "setup_logging",
    "use_asset_pipeline",
    "Asset",
    "CompileCache",
    "CompiledArtifact",
    "BundlerConfig",
    "BundlerError",
    "ConfigurationError",
    "DuplicateRouteError",
    "EmptySourceListError",
    "ProcessingError",
    "ProcessingErrorKind",
    "SourceNotFoundError",
    "AssetMiddleware",
    "LoggingMiddleware",
    "Pipeline",
    "CodeSettings",
    "CssSettings",
    "FunctionProcessor",
    "Localizer",
    "LookupMiss",
    "Processor",
    "StringCatalog",
    "processor",
    "FileSourceProvider",
    "MemorySourceProvider",
    "SourceReader",
]
