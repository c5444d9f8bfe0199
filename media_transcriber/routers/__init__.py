"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .info import router as info_router
from .text import router as text_router
from .transcription import router as transcription_router

__all__ = [
    "info_router",
    "text_router",
    "transcription_router",
]
