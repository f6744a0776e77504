"""Marketplace FastAPI application.

Web server for the storefront: catalogue reads and collections, provider
catalogue sync, quoting, checkout, order lookups, the draft cleanup trigger
and provider webhooks. Commands are processed synchronously inside the
marketplace domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay; provider credentials come from
# marketplace.config.Settings.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.domain import marketplace
from marketplace.fulfillment import get_providers
from marketplace.payments import get_gateway
from marketplace.utils.logging import add_context, clear_context
from protean.integrations.fastapi import register_exception_handlers

marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Print-on-demand marketplace — catalogue, multi-provider checkout and orders",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and bind request log context."""
    add_context(method=request.method, path=request.url.path)
    try:
        with marketplace.domain_context():
            response = await call_next(request)
        return response
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import (  # noqa: E402
    checkout_router,
    collection_router,
    cron_router,
    order_router,
    product_router,
    register_checkout_exception_handlers,
    sync_router,
    webhook_router,
)

app.include_router(checkout_router)
app.include_router(product_router)
app.include_router(collection_router)
app.include_router(sync_router)
app.include_router(order_router)
app.include_router(cron_router)
app.include_router(webhook_router)

register_exception_handlers(app)
register_checkout_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    gateway = get_gateway()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": marketplace.name,
            "fulfillmentProviders": sorted(get_providers()),
            "paymentProvider": gateway.name if gateway else None,
        }
    )
