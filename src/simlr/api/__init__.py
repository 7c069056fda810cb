"""API module for Simlr.

The entry point is ``api_router`` from routers/, which aggregates every
sub-router and is mounted under /api in main.py.

Structure:
- routers/: endpoints (albums, ratings, simlrs, votes, discussions, auth, me, health)
- schemas/: camelCase pydantic request/response models
- dependencies.py: sessions, services and the current user
- exception_handlers.py: domain exception → HTTP status mapping
"""

from simlr.api.exception_handlers import register_exception_handlers
from simlr.api.routers import api_router

__all__ = ["api_router", "register_exception_handlers"]
