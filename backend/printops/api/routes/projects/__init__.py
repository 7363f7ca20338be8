"""
Project Routes Module

- crud.py: create, list, get, activity, revisions
- lifecycle.py: status transitions, acknowledgements, gates, feedback, hold, reopen

Both routers are mounted under /projects by the API router.
"""

from .crud import router as crud_router
from .lifecycle import router as lifecycle_router

__all__ = ["crud_router", "lifecycle_router"]
