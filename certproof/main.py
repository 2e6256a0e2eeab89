from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from certproof.api.certifications import router as certifications_router
from certproof.api.health import router as health_router
from certproof.api.metrics_endpoint import router as metrics_router
from certproof.api.verify import router as verify_router
from certproof.core.config import SETTINGS
from certproof.core.errors import CourseNotFound, InvalidArgument, LedgerUnavailable
from certproof.core.logging import setup_logging
from certproof.db.redis import lifespan_redis
from certproof.middleware.metrics import MetricsMiddleware
from certproof.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)
from certproof.models.verdict import FailureReason
from certproof.services.container import build_services

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    services = app.state.services
    async with lifespan_redis(services.redis):
        try:
            yield
        finally:
            await services.ledger.aclose()


app = FastAPI(
    title="certproof",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)
app.state.services = build_services(SETTINGS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext → Metrics → CORS → route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(CourseNotFound)
async def _course_not_found(_request: Request, exc: CourseNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": FailureReason.COURSE_NOT_FOUND.message},
    )


@app.exception_handler(InvalidArgument)
async def _invalid_argument(_request: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


@app.exception_handler(LedgerUnavailable)
async def _ledger_unavailable(_request: Request, exc: LedgerUnavailable) -> JSONResponse:
    logger.warning("Ledger unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": FailureReason.NETWORK_ERROR.message},
        headers={"Retry-After": "5"},
    )


app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(verify_router)
app.include_router(certifications_router)

logger.info(
    "certproof started  env=%s log_level=%s port=%d ledger=%s challenge_ttl=%ss",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.ledger_backend,
    SETTINGS.challenge_ttl_seconds,
)
