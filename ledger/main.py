"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Logging: configured once from settings.LOG_LEVEL
  2. Lifespan manager: creates tables on startup, disposes the engine on shutdown
  3. CORS middleware
  4. Exception handlers: maps ledger errors to HTTP responses
  5. Router registration

Running locally:
    uvicorn ledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger.config import settings
from ledger.database import engine, Base
from ledger.exceptions import register_exception_handlers
from ledger import models  # noqa: F401  (registers tables on Base.metadata)
from ledger.routers import transactions


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create all tables if they don't exist.
    Shutdown: dispose of the database engine.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Balance ledger API: use, cancel and query account transactions",
    lifespan=lifespan,
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

app.include_router(transactions.router, prefix="/transaction", tags=["Transactions"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment probes."""
    return {"status": "ok", "version": settings.APP_VERSION}
