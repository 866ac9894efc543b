# API routers
from . import practice_router

__all__ = ["practice_router"]
