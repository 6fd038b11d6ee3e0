"""
=============================================================================
ASSET MIDDLEWARE
=============================================================================

Serves the compiled output of registered assets. Requests for any other
path are passed down the chain untouched.

=============================================================================
REQUEST STATES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   RECEIVED ──► RESOLVING ──┬──► NOT_FOUND ──► next(request)         │
    │                            │                                         │
    │                            └──► RESOLVED                             │
    │                                    │  GET/HEAD only (else 405)       │
    │                                    ▼                                 │
    │                                COMPILING   asset.get_output(locale)  │
    │                                    │       coalesced, may be a hit   │
    │                                    ▼                                 │
    │                                RESPONDING  200 / 304 / 500           │
    │                                    │                                 │
    │                                    ▼                                 │
    │                                  DONE                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CACHING HEADERS
=============================================================================

    ETag            "<content fingerprint>"          strong validator
    Last-Modified   compile time of the artifact
    Cache-Control   public, max-age=31536000, immutable
                        when ?v= equals the current fingerprint
                    public, max-age=N
                        when cache_max_age > 0
                    public, no-cache
                        otherwise: keep the body, revalidate every use
    Vary            Accept-Language                  localized assets only

Conditional requests: If-None-Match wins when present (weak comparison,
"*" matches any artifact); otherwise If-Modified-Since is compared with
the compile time at one-second precision. A match answers 304 with no body.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..asset import Asset
from ..cache import CompiledArtifact
from ..config import BundlerConfig
from ..errors import BundlerError, ProcessingError, SourceNotFoundError
from ..http.mime_types import content_type_with_charset
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    internal_error,
    method_not_allowed,
    not_found,
)
from ..http.status_codes import HTTPStatus
from ..pipeline import Pipeline
from .base import Middleware, NextHandler


logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "HEAD"]


class RequestState(Enum):
    RECEIVED = "received"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    COMPILING = "compiling"
    RESPONDING = "responding"
    DONE = "done"


@dataclass
class RequestContext:
    """Per-request state while an asset request is being answered."""

    request: HTTPRequest
    asset: Optional[Asset] = None
    locale: Optional[str] = None
    artifact: Optional[CompiledArtifact] = None
    state: RequestState = RequestState.RECEIVED
    history: List[RequestState] = field(default_factory=list)

    def advance(self, state: RequestState) -> None:
        self.history.append(self.state)
        self.state = state


def not_found_handler(request: HTTPRequest) -> HTTPResponse:
    """Terminal handler for paths no asset claims."""
    logger.debug(f"No asset for {request.method} {request.path}")
    return not_found(f"No asset registered for {request.path}")


class AssetMiddleware(Middleware):
    """
    Answers requests whose path is a registered asset route.

    Args:
        pipeline: The asset registry; normally frozen before serving.
        config: Locale, caching and error exposure settings. Defaults to
                the pipeline's config.
    """

    def __init__(self, pipeline: Pipeline, config: Optional[BundlerConfig] = None):
        self.pipeline = pipeline
        self.config = config or pipeline.config

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        context = RequestContext(request)
        context.advance(RequestState.RESOLVING)

        asset = self.pipeline.get(request.path)
        if asset is None:
            context.advance(RequestState.NOT_FOUND)
            return next(request)

        return self._serve(context, asset)

    def handle(self, request: HTTPRequest, asset: Asset) -> HTTPResponse:
        """Answer a request for an asset already resolved by the router."""
        context = RequestContext(request)
        context.advance(RequestState.RESOLVING)
        return self._serve(context, asset)

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _serve(self, context: RequestContext, asset: Asset) -> HTTPResponse:
        request = context.request
        context.asset = asset
        context.advance(RequestState.RESOLVED)

        if request.method not in ALLOWED_METHODS:
            context.advance(RequestState.DONE)
            return method_not_allowed(ALLOWED_METHODS)

        if asset.is_localized:
            context.locale = self.resolve_locale(request, asset)

        context.advance(RequestState.COMPILING)
        try:
            context.artifact = asset.get_output(context.locale)
        except BundlerError as e:
            context.advance(RequestState.RESPONDING)
            response = self._error_response(asset, context.locale, e)
            context.advance(RequestState.DONE)
            return response
        except Exception as e:
            # A failure outside the bundler's own error types still only
            # fails this request.
            logger.exception(f"Unexpected error serving {asset.route}: {e}")
            context.advance(RequestState.DONE)
            return internal_error("Asset compilation failed")

        context.advance(RequestState.RESPONDING)
        if self._is_not_modified(request, context.artifact):
            response = self._not_modified(context)
        else:
            response = self._full_response(context)
        context.advance(RequestState.DONE)
        return response

    def resolve_locale(self, request: HTTPRequest, asset: Asset) -> str:
        """
        ?culture=, then the Accept-Language tags in preference order, then
        the default. Only locales the asset knows are selected.
        """
        requested = (request.get_query(self.config.locale_query_param) or "").strip()
        candidates = [requested] if requested else request.accept_language
        for candidate in candidates:
            locale = asset.match_locale(candidate)
            if locale is not None:
                return locale
        return asset.default_locale.lower()

    # =========================================================================
    # CONDITIONAL REQUESTS
    # =========================================================================

    @staticmethod
    def _is_not_modified(request: HTTPRequest, artifact: CompiledArtifact) -> bool:
        tags = request.if_none_match
        if tags is not None:
            if tags == ["*"]:
                return True
            current = _opaque_tag(artifact.etag)
            return any(_opaque_tag(tag) == current for tag in tags)

        since = request.if_modified_since
        if since is not None:
            return artifact.compiled_at.replace(microsecond=0) <= since
        return False

    # =========================================================================
    # RESPONSES
    # =========================================================================

    def _apply_caching(self, builder: ResponseBuilder, context: RequestContext) -> ResponseBuilder:
        artifact = context.artifact
        version = context.request.get_query(self.config.version_query_param)
        if version and version == artifact.content_fingerprint:
            builder.immutable(self.config.immutable_max_age)
        elif self.config.cache_max_age > 0:
            builder.cache(self.config.cache_max_age)
        else:
            builder.no_cache_revalidate()

        builder.etag(artifact.etag)
        if context.asset.is_localized:
            builder.vary("Accept-Language")
        return builder

    def _not_modified(self, context: RequestContext) -> HTTPResponse:
        builder = ResponseBuilder().status(HTTPStatus.NOT_MODIFIED)
        return self._apply_caching(builder, context).build()

    def _full_response(self, context: RequestContext) -> HTTPResponse:
        artifact = context.artifact
        builder = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type(content_type_with_charset(context.asset.content_type))
            .last_modified(artifact.compiled_at)
            .header("X-Content-Type-Options", "nosniff"))
        self._apply_caching(builder, context)

        if context.request.method == "HEAD":
            builder.header("Content-Length", str(len(artifact.body)))
        else:
            builder.body(artifact.body)
        return builder.build()

    def _error_response(self, asset: Asset, locale: Optional[str], error: BundlerError) -> HTTPResponse:
        label = f"{asset.route} [{locale}]" if locale else asset.route
        logger.error(f"Serving {label} failed: {type(error).__name__}: {error}")

        payload = {"error": "Asset compilation failed", "route": asset.route}
        if self.config.expose_errors:
            payload.update(_error_details(error))

        try:
            status = HTTPStatus(error.status_code)
        except ValueError:
            status = HTTPStatus.INTERNAL_SERVER_ERROR

        return (ResponseBuilder()
            .status(status)
            .json(payload)
            .no_cache_revalidate()
            .build())


def _opaque_tag(tag: str) -> str:
    """Strip the weak prefix: If-None-Match uses weak comparison."""
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def _error_details(error: BundlerError) -> dict:
    details = {"type": type(error).__name__, "detail": str(error)}
    if isinstance(error, SourceNotFoundError):
        details.update(source=error.identifier, reason=error.reason)
    elif isinstance(error, ProcessingError):
        details.update(step=error.step, kind=error.kind.value)
        if error.source:
            details["source"] = error.source
        if error.line is not None:
            details["line"] = error.line
    return details
