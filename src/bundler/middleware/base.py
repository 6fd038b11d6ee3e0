"""
=============================================================================
MIDDLEWARE INTERFACE
=============================================================================

Chain of responsibility around the router's handler. Each middleware either
answers the request itself or passes it on with next(request).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          REQUEST FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐                      │
    │   │ Logging  │───►│  Asset   │───►│ fallback │                      │
    │   │    MW    │    │    MW    │    │ handler  │                      │
    │   └────┬─────┘    └────┬─────┘    └────┬─────┘                      │
    │        │               │               │                            │
    │   start timer     known route?      404                             │
    │                   yes → answer                                      │
    │                   no  → next()                                      │
    │        │               │               │                            │
    │   log status  ◄────────┴───────────────┘                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    First added = outermost. Requests flow inward, responses outward.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class ServerHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-By", "bundler")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Handle `request` or delegate to `next`.

        Args:
            request: The incoming request.
            next: The rest of the chain.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of middleware wrapped around a final handler.

        chain = MiddlewarePipeline().use(LoggingMiddleware(), AssetMiddleware(pipeline))
        handler = chain.wrap(not_found_handler)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware; it runs inside everything added before it."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the callable chain.

        Wraps in reverse so the first-added middleware ends up outermost:
        [MW1, MW2] + handler  →  MW1 → MW2 → handler
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """Wraps a `(request, next) -> response` function as middleware."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def no_referrer(request, next):
            response = next(request)
            response.set_header("Referrer-Policy", "no-referrer")
            return response
    """
    return FunctionMiddleware(func)
