"""
RAC Dashboard Backend — FastAPI Application Entry Point

Configures the FastAPI application, includes all routers, sets up CORS and
logging, and initializes the database on startup.

Architecture:
    - FastAPI application with auto-generated OpenAPI docs at /docs
    - All routers mounted under /api prefix
    - Database tables created on startup via lifespan event

Usage:
    python -m uvicorn racdash.main:app --host 127.0.0.1 --port 8050
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .database import engine, init_db
from .routers import credentials, sessions

logger = logging.getLogger("racdash")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - On startup: configure logging, create tables if they don't exist
    - On shutdown: dispose of the engine's connection pool
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await init_db()
    logger.info("Session data manager initialized")
    yield
    await engine.dispose()


app = FastAPI(
    title="RAC Financial Dashboard",
    description=(
        "Session cache of per-company Xero financial summaries with "
        "instant consolidation over any selection of companies."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router)     # /api/sessions
app.include_router(credentials.router)  # /api/credentials


@app.get("/")
def root():
    """Health check and API information endpoint."""
    return {
        "name": "RAC Dashboard API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "load": "/api/sessions/{session_id}/load",
            "consolidated": "/api/sessions/{session_id}/consolidated",
            "selection": "/api/sessions/{session_id}/selection",
            "status": "/api/sessions/{session_id}/status",
            "credentials": "/api/credentials/{tenant_id}",
        },
    }


@app.get("/health")
def health_check():
    """Simple health check for monitoring."""
    return {"status": "healthy"}
