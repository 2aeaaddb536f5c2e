import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agora.api.routes import router
from agora.config import get_settings
from agora.database import engine, Base
from agora.services.cache import TTLCache
from agora.services.rate_limiter import RateLimiter

# Import models so SQLAlchemy knows about them when creating tables
from agora.models import debate  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN: Startup and Shutdown Logic
# =============================================================================
#
# - Everything BEFORE 'yield' runs once on startup
# - Everything AFTER 'yield' runs once on shutdown
#
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""

    # === STARTUP ===
    async with engine.begin() as conn:
        # Create all tables defined in our models (no-op if they exist)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({settings.environment})")

    yield

    # === SHUTDOWN ===
    # Close all database connections in the pool
    await engine.dispose()


app = FastAPI(
    title="Agora Debate API",
    description="Structured debates with AI argument-quality scoring and reputation",
    version="0.1.0",
    lifespan=lifespan,
)

# Per-process state: rate-limit windows and cached analyses live in memory
# and start empty on every restart
app.state.rate_limiter = RateLimiter()
app.state.analysis_cache = TTLCache(
    max_size=settings.analysis_cache_max_size,
    ttl_seconds=settings.analysis_cache_ttl_seconds,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
