"""
=============================================================================
MIDDLEWARE
=============================================================================

    base.py      Middleware, MiddlewarePipeline (chain of responsibility)
    assets.py    AssetMiddleware: serves compiled assets
    logging.py   LoggingMiddleware: access log + X-Request-ID

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    FunctionMiddleware,
    function_middleware,
)
from .assets import AssetMiddleware, RequestContext, RequestState, not_found_handler
from .logging import LoggingMiddleware, AccessLogEntry

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "AssetMiddleware",
    "RequestContext",
    "RequestState",
    "not_found_handler",
    "LoggingMiddleware",
    "AccessLogEntry",
]
