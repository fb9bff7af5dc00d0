"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging - loguru, with stdlib logging routed into it
  2. Card cipher - built once from configuration, stored on app.state
  3. Lifespan manager - DB table creation on startup, engine disposal on shutdown
  4. CORS middleware, exception handlers, routers

Running locally:
    uvicorn app.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app import models  # noqa: F401  (registers every table on Base.metadata)
from app.config import settings
from app.database import create_tables, engine
from app.encryption import build_card_cipher
from app.exceptions import register_exception_handlers
from app.logging_config import setup_logging
from app.routers import admin, cards, transfers


setup_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Creates all database tables if they don't exist. Production schemas
      are managed by migrations; this is a convenience for local runs.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    await create_tables()
    logger.info("{} {} started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Bank card management: masked card data, block requests, and transfers between your own cards",
    lifespan=lifespan,
)

# The cipher is configuration, not request state: one per process.
# Built here rather than in lifespan so test clients that skip lifespan
# events still have it.
app.state.card_cipher = build_card_cipher(
    settings.CARD_ENCRYPTION_KEY,
    strict=settings.CARD_DECRYPT_STRICT,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(cards.router, prefix="/cards", tags=["Cards"])
app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
