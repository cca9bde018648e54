"""EcoLedger Core API - Main Application."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ecoledger_core.api.routes import ledger as ledger_routes
from ecoledger_core.api.routes import notifications as notifications_routes
from ecoledger_core.api.routes import reports as reports_routes
from ecoledger_core.api.routes import rewards as rewards_routes
from ecoledger_core.api.routes import stats as stats_routes
from ecoledger_core.api.routes import tasks as tasks_routes
from ecoledger_core.api.routes import users as users_routes
from ecoledger_core.config import get_settings
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.verification import (
    HttpVerificationOracle,
    OracleConfig,
    VerificationGate,
)
from ecoledger_core.infra.db import dispose_engine
from ecoledger_core.observability import (
    RequestContext,
    bind_request_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    app.state.settings = settings
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        service_name="ecoledger-core",
    )

    app.state.reward_policy = CollectRewardPolicy.from_settings(settings)

    oracle = None
    if settings.oracle_url:
        oracle = HttpVerificationOracle(
            OracleConfig(
                base_url=settings.oracle_url,
                timeout=settings.verification_timeout_seconds,
                api_key=settings.oracle_api_key,
            )
        )
        app.state.verification_gate = VerificationGate(
            oracle,
            timeout=settings.verification_timeout_seconds,
            threshold=settings.verification_confidence_threshold,
        )
    else:
        logger.warning("No verification oracle configured; verification is disabled")
        app.state.verification_gate = None

    logger.info(
        "EcoLedger core started",
        collect_reward_mode=settings.collect_reward_mode,
        oracle_configured=oracle is not None,
    )
    yield
    # Shutdown
    if oracle is not None:
        await oracle.close()
    dispose_engine()


app = FastAPI(
    title="EcoLedger Core API",
    description="Waste reporting, collection tasks and reward points",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with a request id echoed in ``X-Request-ID``."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    context = RequestContext(
        request_id=request_id,
        path=request.url.path,
        method=request.method,
    )
    user_header = request.headers.get("x-user-id")
    if user_header and user_header.isdigit():
        context.user_id = int(user_header)

    started = time.monotonic()
    with bind_request_context(context):
        response = await call_next(request)
        logger.info(
            "Request handled",
            status_code=response.status_code,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    response.headers["X-Request-ID"] = request_id
    return response


# Include API routers
app.include_router(users_routes.router)
app.include_router(reports_routes.router)
app.include_router(tasks_routes.router)
app.include_router(ledger_routes.router)
app.include_router(rewards_routes.router)
app.include_router(notifications_routes.router)
app.include_router(stats_routes.router)


@app.get("/healthz")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"ok": True, "service": "ecoledger-core"}


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "name": "EcoLedger Core API",
        "version": "0.1.0",
        "status": "running",
    }
