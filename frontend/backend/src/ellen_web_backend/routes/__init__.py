"""Routes package for the chat backend API.

All API routes are defined here and registered with the FastAPI app.
"""

from ellen_web_backend.routes.chat import router as chat_router
from ellen_web_backend.routes.health import router as health_router
from ellen_web_backend.routes.sessions import router as sessions_router

__all__ = ["chat_router", "health_router", "sessions_router"]
