"""API route modules."""

from warroom.api.routes.matchups import router as matchups_router

__all__ = ["matchups_router"]
