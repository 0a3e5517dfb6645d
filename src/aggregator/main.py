# src/aggregator/main.py
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from aggregator.api.dependencies import (
    get_adapter_registry,
    get_globetopper_adapter,
    get_http_client,
    get_product_cache,
    get_snapshot_repository,
    get_warmup_scheduler,
)
from aggregator.api.v1.router import api_router
from aggregator.core.config import get_settings
from aggregator.core.logging import configure_logging
from aggregator.core.metrics import REQUEST_COUNT
from aggregator.core.rate_limit import limiter
from aggregator.domain.models import Provider
from aggregator.services.product_cache import ProductCache
from aggregator.services.warmup_scheduler import WarmUpScheduler

logger = logging.getLogger(__name__)

settings = get_settings()


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        REQUEST_COUNT.labels(
            method=request.method,
            path=request.url.path,
            status_code=str(response.status_code),
        ).inc()
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: Logging, Disk-Cache laden, Warm-up planen
    current = get_settings()
    configure_logging(current.log_level)
    client = get_http_client()
    cache = get_product_cache(current)
    snapshots = get_snapshot_repository(current)
    adapters = get_adapter_registry(client, current, get_globetopper_adapter(client, current))
    scheduler = get_warmup_scheduler(current, cache, adapters, snapshots)

    if await snapshots.load(cache):
        logger.info("Disk cache loaded: %d products available immediately", cache.total_products())
    if current.warmup_enabled:
        scheduler.start()
    yield
    # Shutdown: Scheduler stoppen, HTTP Client schließen
    await scheduler.stop()
    await client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Rate Limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Metrics Middleware
app.add_middleware(MetricsMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["X-API-Key", "Content-Type"],
)

app.include_router(api_router)


@app.get("/healthz", tags=["Health"])
async def health_check(
    cache: ProductCache = Depends(get_product_cache),
    scheduler: WarmUpScheduler = Depends(get_warmup_scheduler),
) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": settings.app_version,
        "cache": {
            "totalProducts": cache.total_products(),
            "providers": {p.value: cache.state(p).value for p in Provider},
        },
        "warmUp": {
            "inProgress": scheduler.is_warming,
            "lastCompletedAt": scheduler.last_completed_at,
            "lastOutcomes": {p.value: o.value for p, o in scheduler.last_outcomes.items()},
        },
    }


@app.get("/readyz", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    return {"status": "ready"}


@app.get("/metrics", tags=["Monitoring"])
async def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
