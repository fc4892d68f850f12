"""
API Routes Module
"""
from .health import router as health_router
from .analytics import router as analytics_router
from .expenses import router as expenses_router
from .sync import router as sync_router

__all__ = [
    "health_router",
    "analytics_router",
    "expenses_router",
    "sync_router",
]
