"""API routers."""

from orbis.routers import health, practice, review

__all__ = ["health", "practice", "review"]
