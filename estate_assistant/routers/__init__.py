"""
API Routers package.
"""

from .chat import router as chat_router
from .health import router as health_router
from .properties import router as properties_router
from .voice import router as voice_router

__all__ = [
    "chat_router",
    "health_router",
    "properties_router",
    "voice_router",
]
