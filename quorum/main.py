"""Quorum - meeting record sync and revision FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quorum.config import get_settings
from quorum.api import meetings, decisions, actions
from quorum.services.database import init_db, close_db

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await init_db()

    yield

    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Meeting records synchronized with canonical decisions and actions",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
workspace_prefix = "/api/v1/workspaces/{workspace_slug}"
app.include_router(meetings.router, prefix=f"{workspace_prefix}/meetings", tags=["Meetings"])
app.include_router(decisions.router, prefix=f"{workspace_prefix}/decisions", tags=["Decisions"])
app.include_router(actions.router, prefix=f"{workspace_prefix}/actions", tags=["Actions"])


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs",
        "health": "/health",
    }
