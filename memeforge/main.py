"""Meme Forge Backend API - FastAPI application."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import get_settings
from .dependencies import AppSettings
from .logging_config import configure_logging, get_logger
from .payments import PaymentVerificationError
from .payments.verification import _rpc_call
from .rate_limit import limiter
from .routes import generate_router, metadata_router, payments_router

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        f"Starting Meme Forge Backend API (network={settings.solana_network} "
        f"debug={settings.debug})"
    )
    if settings.allow_payment_bypass:
        logger.warning("ALLOW_PAYMENT_BYPASS is enabled; payments can be skipped")
    yield
    # Shutdown
    logger.info("Shutting down Meme Forge Backend API")


app = FastAPI(
    title="Meme Forge Backend API",
    description="x402 payment verification and paid meme generation",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(payments_router)
app.include_router(generate_router)
app.include_router(metadata_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "memeforge-backend",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health")
async def health(settings: AppSettings):
    """Detailed health check that probes the Solana RPC node."""
    rpc_status = "unreachable"
    try:
        result = await _rpc_call(settings.rpc_url, "getHealth", [], timeout=5.0)
        rpc_status = result if isinstance(result, str) else "ok"
    except (httpx.HTTPError, PaymentVerificationError, ValueError) as e:
        rpc_status = f"error: {str(e)[:50]}"

    overall_status = "healthy" if rpc_status == "ok" else "degraded"

    return {
        "status": overall_status,
        "rpc": rpc_status,
        "network": settings.solana_network,
    }
