"""Route modules."""

from .balance import router as balance_router
from .internal import router as internal_router
from .jobs import router as jobs_router
from .works import router as works_router

__all__ = ["balance_router", "internal_router", "jobs_router", "works_router"]
