"""Application entrypoint.

Centralized settings + structured logging + background cache maintenance.
"""
import asyncio
import json
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from swipehire.core.cache import CacheStore
from swipehire.core.context import AppContext
from swipehire.core.settings import Settings, settings as default_settings
from swipehire.database.db import (
    DocumentStoreConflict,
    DocumentStoreError,
    DocumentStoreTimeout,
    MongoDocumentStore,
)
from swipehire.middleware.rate_limit import build_limiter, _rate_limit_exceeded_handler
from swipehire.routes import (
    diary_routes,
    event_routes,
    job_routes,
    match_routes,
    notification_routes,
    reminder_routes,
    review_routes,
    user_routes,
)

# Configure logging
logging.basicConfig(
    level=default_settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "level": record.levelname,
            "ts": record.created,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_record)

for handler in logging.getLogger().handlers:
    handler.setFormatter(JsonFormatter())

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", ["method", "path", "status"])
REQUEST_LATENCY = Histogram("http_request_duration_seconds", "Request latency", ["path"])


async def _cache_cleanup_loop(cache: CacheStore, interval_seconds: float):
    """Background loop sweeping expired cache entries on a fixed interval."""
    logger.info("Cache cleanup task started")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = cache.cleanup()
            if removed:
                logger.info(f"Cache sweep purged {removed} expired entries, {cache.size()} remain")
        except Exception as e:
            logger.error(f"Cache cleanup error: {e}")


def create_app(settings: Optional[Settings] = None, store=None, cache: Optional[CacheStore] = None) -> FastAPI:
    """
    Builds the API.

    ``store`` defaults to a MongoDocumentStore from settings and ``cache`` to
    a fresh CacheStore; tests pass their own of either.
    """
    settings = settings or default_settings
    if cache is None:
        cache = CacheStore(max_entries=settings.cache_max_entries)
    if store is None:
        store = MongoDocumentStore.from_settings(settings)

    app = FastAPI(title=settings.app_name, version="v1", openapi_tags=[
        {"name": "users", "description": "User profiles and jobseeker listings"},
        {"name": "jobs", "description": "Public job board and employer job posts"},
        {"name": "matches", "description": "Matches and match chat"},
        {"name": "notifications", "description": "User notifications"},
        {"name": "reviews", "description": "Company reviews"},
        {"name": "diary", "description": "Diary posts"},
        {"name": "events", "description": "Industry events"},
        {"name": "reminders", "description": "Follow-up reminders"},
    ])
    app.state.context = AppContext(settings=settings, cache=cache, store=store)

    # Attach rate limiting
    app.state.limiter = build_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(DocumentStoreTimeout)
    async def store_timeout_handler(request: Request, exc: DocumentStoreTimeout):
        return JSONResponse(status_code=504, content={"error": "Database query timeout"})

    @app.exception_handler(DocumentStoreConflict)
    async def store_conflict_handler(request: Request, exc: DocumentStoreConflict):
        return JSONResponse(status_code=409, content={"error": "Resource already exists"})

    @app.exception_handler(DocumentStoreError)
    async def store_error_handler(request: Request, exc: DocumentStoreError):
        return JSONResponse(status_code=503, content={"error": "Database service unavailable"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Request error on {request.url.path}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        path = request.url.path
        method = request.method
        start = time.perf_counter()
        with REQUEST_LATENCY.labels(path=path).time():
            response = await call_next(request)
        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        response.headers["X-Response-Time"] = f"{(time.perf_counter() - start) * 1000:.0f}ms"
        response.headers["X-Cache-Hits"] = str(cache.hits)
        response.headers["X-Cache-Misses"] = str(cache.misses)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(',')],
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Include routers
    app.include_router(user_routes.router, prefix="/api", tags=["users"])
    app.include_router(job_routes.router, prefix="/api", tags=["jobs"])
    app.include_router(match_routes.router, prefix="/api", tags=["matches"])
    app.include_router(notification_routes.router, prefix="/api", tags=["notifications"])
    app.include_router(review_routes.router, prefix="/api", tags=["reviews"])
    app.include_router(diary_routes.router, prefix="/api", tags=["diary"])
    app.include_router(event_routes.router, prefix="/api", tags=["events"])
    app.include_router(reminder_routes.router, prefix="/api", tags=["reminders"])

    @app.get("/")
    async def root():
        """Root endpoint for the API."""
        return {"message": f"{settings.app_name} is running", "version": app.version}

    @app.get("/health")
    async def health():
        """Store reachability plus cache counters; 503 when the store is down."""
        start = time.perf_counter()
        try:
            await store.ping()
        except DocumentStoreError as e:
            logger.warning(f"Health check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
        stats = cache.stats()
        return {
            "status": "healthy",
            "responseTime": round((time.perf_counter() - start) * 1000, 2),
            "cache": {
                "hits": stats["hits"],
                "misses": stats["misses"],
                "evictions": stats["evictions"],
                "size": stats["size"],
            },
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.on_event("startup")
    async def start_background_jobs():
        if hasattr(store, "create_indexes"):
            try:
                await store.create_indexes()
            except DocumentStoreError as e:
                logger.error(f"Database initialization failed: {e}")
        # Sweep runs beside request handling, never inside it
        app.state.cache_cleanup_task = asyncio.create_task(
            _cache_cleanup_loop(cache, settings.cache_cleanup_interval_seconds)
        )

    @app.on_event("shutdown")
    async def stop_background_jobs():
        task = getattr(app.state, "cache_cleanup_task", None)
        if task is not None:
            task.cancel()
        cache.clear()
        if hasattr(store, "close"):
            await store.close()

    return app


app = create_app()
