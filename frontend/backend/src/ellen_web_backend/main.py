"""ELLEN chat backend - FastAPI application.

This module provides the main FastAPI application with routes for:
- Session management
- Chat streaming and authoritative session history
- Health checks
"""

from __future__ import annotations

import logging

from ellen_chat.logging_utils import SessionContextFilter
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ellen_web_backend.routes import chat_router, health_router, sessions_router
from ellen_web_backend.services.request_context import request_id_middleware
from ellen_web_backend.settings import get_settings

# Configure logging
logger = logging.getLogger("ellen_web_backend")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(name)s - %(levelname)s - %(request_id)s - %(session_id)s - %(message)s")
    )
    handler.addFilter(SessionContextFilter())
    logger.addHandler(handler)

# Create FastAPI app
app = FastAPI(title="ELLEN Chat Backend", version="1.0.0")
app.middleware("http")(request_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id", "X-Session-Id"],
)


@app.on_event("startup")
async def startup_event():
    """Log effective settings on application startup."""
    settings = get_settings()
    logger.info(
        "Starting ELLEN chat backend (stream_format=%s, storage_dir=%s)",
        settings.stream_format,
        settings.storage_dir,
    )


# Register routers
app.include_router(health_router)
app.include_router(sessions_router)
app.include_router(chat_router)
