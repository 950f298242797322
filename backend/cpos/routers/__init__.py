"""Routers package."""

from .inventory import router as inventory_router
from .sales import router as sales_router

__all__ = ["inventory_router", "sales_router"]
