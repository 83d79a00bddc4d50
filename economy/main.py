"""
Main FastAPI application for the coin economy.
Serves wallet, ad rewards, unlocks, daily check-in, internal admin, health and metrics.
"""
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from economy.api.routes import checkin, health, internal, unlocks, wallet
from economy.core.config import settings
from economy.core.logging import configure_logging
from economy.services.errors import CatalogError, EpisodeNotFoundError, StorageFailure
from economy.utils.metrics import router as metrics_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Coin Economy API",
    description="Wallet, ad rewards, content unlocks and daily check-in",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid4().hex
    start = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "latency_ms": round((time.perf_counter() - start) * 1000, 1),
        },
    )
    return response


@app.exception_handler(StorageFailure)
def storage_failure_handler(request: Request, exc: StorageFailure) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, retry later", "retryable": True})


@app.exception_handler(SQLAlchemyError)
def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Storage errors that escaped a service unit of work
    logger.error("storage_error", extra={"path": request.url.path, "error": type(exc).__name__})
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, retry later", "retryable": True})


@app.exception_handler(EpisodeNotFoundError)
def episode_not_found_handler(request: Request, exc: EpisodeNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Episode not found"})


@app.exception_handler(CatalogError)
def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    logger.warning("catalog_error", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=502, content={"detail": "Catalog unavailable"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(wallet.router)
app.include_router(unlocks.router)
app.include_router(checkin.router)
app.include_router(internal.router)
app.include_router(metrics_router)
