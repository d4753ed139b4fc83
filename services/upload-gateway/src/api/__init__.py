"""HTTP routes for the Upload Gateway."""

from .routes import router

__all__ = ["router"]
