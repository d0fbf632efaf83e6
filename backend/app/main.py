import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.core.config import get_settings
from app.core.constants import CORS_ALLOWED_HEADERS
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.middleware import CorrelationIDMiddleware
from app.core.posthog import init_posthog, shutdown_posthog
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.routers import health, moderation

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting %s...", settings.app_name)
    init_posthog()
    yield
    logger.info("Shutting down %s...", settings.app_name)
    shutdown_posthog()


app = FastAPI(
    title=settings.app_name,
    description="AI moderation and auto-blocking for chat reports",
    version="0.1.0",
    lifespan=lifespan,
)

# Correlation IDs for log tracing
app.add_middleware(CorrelationIDMiddleware)

# CORS middleware (answers preflight OPTIONS); added last so it runs first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_ALLOWED_HEADERS,
)

# Rate limiting (slowapi + Redis)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Global exception handlers (domain exceptions -> JSON outcomes)
register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    moderation.router, prefix=f"{settings.api_prefix}/moderation", tags=["Moderation"]
)


@app.options("/{path:path}", include_in_schema=False)
async def options_fallback(path: str) -> Response:
    """Answer OPTIONS requests that are not CORS preflights."""
    return Response(status_code=200)
