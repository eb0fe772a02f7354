"""HTTP stub of the booking backend."""

from .routes import router

__all__ = ["router"]
