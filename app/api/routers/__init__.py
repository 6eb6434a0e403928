"""Routers package."""

from app.api.routers import health
from app.api.routers.summons import router as summons_router


__all__ = ["health", "summons_router"]
