"""HTTP routes for the Patient Mapper."""

from .routes import router

__all__ = ["router"]
