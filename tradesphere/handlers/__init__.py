# tradesphere/handlers/__init__.py
"""HTTP routers"""
from .order_handlers import router as order_router
from .vendor_handlers import router as vendor_router

__all__ = [
    'order_router',
    'vendor_router',
]
