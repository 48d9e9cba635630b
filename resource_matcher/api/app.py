"""HTTP API for resource matching.

Routes:
- POST /match        rank resources for a profile (query: categories, narrate)
- GET  /categories   active listing counts per category with registry settings
- GET  /healthz      catalog reachability and response-cache stats

Errors use the envelope ``{"success": false, "error": str}``:
400 invalid profile, 503 catalog unavailable or match cancelled/timed out,
500 anything else.
"""

import asyncio
import threading
import time
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from resource_matcher.config.environment import EnvironmentConfig
from resource_matcher.config.models import AppConfig
from resource_matcher.domain.exceptions import InvalidProfileError
from resource_matcher.domain.profile import parse_profile
from resource_matcher.gateway.base import ListingQueryGateway
from resource_matcher.gateway.exceptions import CatalogUnavailableError
from resource_matcher.gateway.sql import SqlListingGateway
from resource_matcher.logging import get_logger
from resource_matcher.logging.context import log_context
from resource_matcher.matching.assembler import ResponseAssembler
from resource_matcher.matching.engine import ResourceMatcher, normalize_categories
from resource_matcher.matching.exceptions import MatchCancelledError
from resource_matcher.narration.anthropic import build_narrator
from resource_matcher.narration.base import Narrator
from resource_matcher.persistence.database import init_database
from resource_matcher.utils.hashing import compute_profile_key
from resource_matcher.utils.timestamps import elapsed_ms, format_timestamp, utc_now

from .cache import ResponseCache

logger = get_logger(__name__, component="api")

API_VERSION = "1.0.0"
DISCONNECT_POLL_SECONDS = 0.1


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ResponseAssembler.error(message))


async def cancel_on_disconnect(
    request: Request,
    cancel_event: threading.Event,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Set ``cancel_event`` once the client goes away.

    Returns when the event is set, by this watcher or by anyone else.
    """
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info(
                "Client disconnected; cancelling match",
                extra={"event": "api.request.disconnected", "path": request.url.path},
            )
            cancel_event.set()
            return
        await asyncio.sleep(poll_interval)


def _split_categories(raw: Optional[str]) -> list:
    if not raw:
        return []
    return normalize_categories(raw.split(","))


def create_app(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    gateway: Optional[ListingQueryGateway] = None,
    narrator: Optional[Narrator] = None,
    matcher: Optional[ResourceMatcher] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_config: Application configuration
        env_config: Environment configuration
        gateway: Catalog gateway; defaults to the SQL store at DATABASE_URL
        narrator: Relevance narrator; defaults to the configured one (if any)
        matcher: Pre-built matcher (tests); built from config when omitted

    Returns:
        Configured FastAPI instance
    """
    if gateway is None:
        init_database(env_config.database_url)
        gateway = SqlListingGateway()
    if narrator is None:
        narrator = build_narrator(app_config.narration, env_config)

    matcher = matcher or ResourceMatcher.from_config(app_config, gateway)
    assembler = ResponseAssembler(narrator=narrator)
    cache = ResponseCache(
        ttl_seconds=app_config.api.cache_ttl_seconds,
        max_entries=app_config.api.cache_max_entries,
    )

    app = FastAPI(title="Resource Matcher API", version=API_VERSION)
    app.state.matcher = matcher
    app.state.assembler = assembler
    app.state.cache = cache
    app.state.started_at = utc_now()

    # -------------------------
    # Middleware
    # -------------------------

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        start = time.time()
        with log_context(request_id=uuid4().hex[:12]):
            response = await call_next(request)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "event": "api.request.completed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms(start),
                },
            )
            return response

    # -------------------------
    # Exception handlers
    # -------------------------

    @app.exception_handler(InvalidProfileError)
    async def invalid_profile_handler(request: Request, exc: InvalidProfileError):
        logger.info(
            f"Rejected invalid profile: {exc}",
            extra={"event": "api.request.invalid", "errors": exc.errors},
        )
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            messages.append(f"{location}: {error.get('msg')}")
        logger.info(
            "Rejected malformed request",
            extra={"event": "api.request.invalid", "errors": messages},
        )
        return _error(400, f"Invalid request: {'; '.join(messages)}")

    @app.exception_handler(CatalogUnavailableError)
    async def catalog_unavailable_handler(request: Request, exc: CatalogUnavailableError):
        return _error(503, "Resource catalog is unavailable")

    @app.exception_handler(MatchCancelledError)
    async def match_cancelled_handler(request: Request, exc: MatchCancelledError):
        return _error(503, "Match timed out or was cancelled")

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {exc}",
            extra={"event": "api.request.failed", "error_type": type(exc).__name__},
            exc_info=exc,
        )
        return _error(500, "Internal server error")

    # -------------------------
    # Routes
    # -------------------------

    def run_match(profile, requested, narrate, cancel_event):
        result = matcher.match(profile, categories=requested, cancel_event=cancel_event)
        return assembler.assemble(result, profile, narrate=narrate)

    @app.post("/match", tags=["matching"])
    async def match(
        request: Request,
        payload: Any = Body(None),
        categories: Optional[str] = Query(
            None, description="Comma-separated categories; defaults from config"
        ),
        narrate: bool = Query(False, description="Attach AI relevance notes"),
    ):
        profile = parse_profile(payload)
        requested = _split_categories(categories) or list(matcher.default_categories)

        use_cache = cache.enabled and not narrate
        cache_key = compute_profile_key(profile, requested) if use_cache else None
        if cache_key is not None:
            cached = cache.get(cache_key)
            if cached is not None:
                logger.debug("Served match from cache", extra={"event": "api.cache.hit"})
                return cached

        # Matching blocks on the gateway; it runs in the threadpool while the
        # event loop watches for the client going away
        cancel_event = threading.Event()
        watcher = asyncio.ensure_future(cancel_on_disconnect(request, cancel_event))
        try:
            body = await run_in_threadpool(run_match, profile, requested, narrate, cancel_event)
        finally:
            watcher.cancel()

        if cache_key is not None:
            cache.set(cache_key, body)
        return body

    @app.get("/categories", tags=["matching"])
    def categories():
        counts = matcher.gateway.count_by_category()
        items = []
        for category, count in counts.items():
            config = matcher.registry.resolve(category)
            items.append(
                {
                    "category": category,
                    "count": count,
                    "strategy": config.strategy.value,
                    "limit": config.limit,
                }
            )
        items.sort(key=lambda item: (-item["count"], item["category"]))
        return {
            "success": True,
            "data": {"categories": items, "total": sum(counts.values())},
        }

    @app.get("/healthz", tags=["meta"])
    def healthz():
        body = {
            "status": "ok",
            "version": API_VERSION,
            "started_at": format_timestamp(app.state.started_at),
            "catalog": "available",
            "narration": "enabled" if assembler.can_narrate else "disabled",
            "cache": cache.stats(),
        }
        try:
            matcher.gateway.check_available()
        except CatalogUnavailableError:
            body["status"] = "degraded"
            body["catalog"] = "unavailable"
            return JSONResponse(status_code=503, content=body)
        return body

    return app
