"""API routes."""

from .generate import router as generate_router
from .metadata import router as metadata_router
from .payments import router as payments_router

__all__ = [
    "payments_router",
    "generate_router",
    "metadata_router",
]
