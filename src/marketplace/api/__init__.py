"""Marketplace HTTP API package."""

from marketplace.api.errors import register_checkout_exception_handlers
from marketplace.api.products import collection_router, product_router, sync_router
from marketplace.api.routes import checkout_router, cron_router, order_router, webhook_router

__all__ = [
    "checkout_router",
    "collection_router",
    "cron_router",
    "order_router",
    "product_router",
    "sync_router",
    "webhook_router",
    "register_checkout_exception_handlers",
]
