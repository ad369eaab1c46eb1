"""Bot handlers module."""

from .duels import router as duels_router
from .economy import router as economy_router
from .games import router as games_router

__all__ = ["duels_router", "economy_router", "games_router"]
