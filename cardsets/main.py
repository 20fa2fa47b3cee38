"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager - handles startup/shutdown (table creation, expired
     session purge, engine cleanup)
  2. CORS middleware - allows frontend origins to make credentialed requests
  3. Exception handlers - maps domain errors to {"ok": false, ...} responses
  4. Router registration - mounts all API endpoint groups
  5. Static files - serves /uploads when the local storage backend is active

Running locally:
    uvicorn cardsets.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import cardsets.models  # noqa: F401  (registers every table on Base.metadata)
from cardsets.config import settings
from cardsets.database import AsyncSessionLocal, Base, engine
from cardsets.exceptions import register_exception_handlers
from cardsets.routers import auth, cards, sets
from cardsets.sessions import SessionStore
from cardsets.storage import LocalImageStorage, get_storage

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Creates all database tables if they don't exist and removes sessions
      that expired while the server was down.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as db:
        purged = await SessionStore(db).purge_expired()
    if purged:
        logger.info("Purged %d expired sessions", purged)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Session-authenticated API for cards, card images and user-owned card sets",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

# Credentials must be allowed for the session cookie to travel cross-origin.
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

app.include_router(auth.router, tags=["Auth"])
app.include_router(cards.router, prefix="/cards", tags=["Cards"])
app.include_router(sets.router, prefix="/sets", tags=["Sets"])

# ---------------------------------------------------------------------------
# Uploaded images (local backend only)
# ---------------------------------------------------------------------------

_storage = get_storage()
if isinstance(_storage, LocalImageStorage):
    app.mount(
        _storage.url_prefix,
        StaticFiles(directory=_storage.directory, check_dir=False),
        name="uploads",
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment probes."""
    return {"ok": True, "status": "ok", "version": settings.APP_VERSION}
