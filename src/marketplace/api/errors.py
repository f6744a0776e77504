"""Mapping checkout failures to HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketplace.checkout.errors import (
    CheckoutError,
    InvalidWebhookSignature,
    ProviderCallFailed,
    ProviderNotConfigured,
    ShippingRateMissing,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    ShippingRateMissing: 400,
    InvalidWebhookSignature: 401,
    ProviderCallFailed: 502,
    ProviderNotConfigured: 503,
}


def status_code_for(exc: CheckoutError) -> int:
    for error_cls, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return status_code
    return 500


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning(
        "Checkout request failed",
        path=request.url.path,
        status_code=status_code,
        provider=exc.provider,
        error=exc.message,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.message, "provider": exc.provider})


def register_checkout_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CheckoutError, checkout_error_handler)
