"""FastAPI endpoints for checkout, orders, maintenance and webhooks."""

from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException, Query, Request
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    CheckoutRequestIn,
    CheckoutResponse,
    CleanupRequest,
    CleanupResponse,
    DeliveryEstimateOut,
    OrderItemOut,
    OrderListResponse,
    OrderOut,
    QuoteRequest,
    QuoteResponse,
    ShippingAddressIn,
    WebhookResponse,
)
from marketplace.checkout.models import CartItem, CheckoutRequest, ShippingAddress
from marketplace.checkout.orchestrator import CheckoutOrchestrator
from marketplace.checkout.reconciliation import WebhookReconciler
from marketplace.checkout.sweeper import DraftSweeper
from marketplace.config import get_settings
from marketplace.fulfillment import get_providers
from marketplace.ordering.order import Order
from marketplace.payments import get_gateway
from marketplace.utils.logging import add_context

checkout_router = APIRouter(tags=["checkout"])
order_router = APIRouter(prefix="/orders", tags=["orders"])
cron_router = APIRouter(prefix="/cron", tags=["maintenance"])
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _orchestrator() -> CheckoutOrchestrator:
    return CheckoutOrchestrator(get_providers(), get_gateway(), currency=get_settings().default_currency)


def _reconciler() -> WebhookReconciler:
    return WebhookReconciler(get_providers(), get_gateway())


def _cart(items) -> list[CartItem]:
    return [CartItem(product_id=i.product_id, variant_id=i.variant_id, quantity=i.quantity) for i in items]


def _address(body: ShippingAddressIn) -> ShippingAddress:
    return ShippingAddress(**body.model_dump())


def _order_out(order: Order) -> OrderOut:
    estimate = order.delivery_estimate
    return OrderOut(
        id=str(order.id),
        user_id=order.user_id,
        status=order.status,
        total_amount=order.total_amount,
        currency=order.currency,
        checkout_session_id=order.checkout_session_id,
        checkout_provider=order.checkout_provider,
        draft_order_ids=order.draft_orders,
        shipping_methods=order.selected_rates,
        fulfillment_order_id=order.fulfillment_order_id,
        fulfillment_reference_id=order.fulfillment_reference_id,
        tracking_info=order.tracking,
        delivery_estimate=(
            DeliveryEstimateOut(
                min_days=estimate.min_days,
                max_days=estimate.max_days,
                estimated_date=estimate.estimated_date,
            )
            if estimate
            else None
        ),
        shipping_address=order.shipping_address.to_dict() if order.shipping_address else None,
        items=[
            OrderItemOut(
                id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                product_name=item.product_name,
                variant_name=item.variant_name,
                image_url=item.image_url,
                quantity=item.quantity,
                unit_price=item.unit_price,
                currency=item.currency,
                attributes=item.attributes,
                fulfillment_provider=item.fulfillment_provider,
            )
            for item in order.items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# --- Storefront endpoints ---


@checkout_router.get("/ping")
async def ping():
    return {"message": "pong"}


@checkout_router.post("/quote", response_model=QuoteResponse)
async def get_quote(body: QuoteRequest) -> QuoteResponse:
    quote = await _orchestrator().get_quote(_cart(body.items), _address(body.shipping_address))
    return QuoteResponse.model_validate(asdict(quote))


@checkout_router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequestIn,
    x_user_id: str = Header(default="guest"),
) -> CheckoutResponse:
    add_context(user_id=x_user_id)
    result = await _orchestrator().create_checkout(
        CheckoutRequest(
            user_id=x_user_id,
            items=_cart(body.items),
            address=_address(body.shipping_address),
            selected_rates=body.selected_rates,
            shipping_cost=body.shipping_cost,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
        )
    )
    return CheckoutResponse(
        checkout_session_id=result.checkout_session_id,
        checkout_url=result.checkout_url,
        order_id=result.order_id,
    )


# --- Order endpoints ---


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    x_user_id: str = Header(default="guest"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> OrderListResponse:
    orders, total = current_domain.repository_for(Order).find_by_user(x_user_id, limit=limit, offset=offset)
    return OrderListResponse(orders=[_order_out(o) for o in orders], total=total, limit=limit, offset=offset)


@order_router.get("/by-session/{session_id}", response_model=OrderOut)
async def get_order_by_session(session_id: str) -> OrderOut:
    order = current_domain.repository_for(Order).find_by_checkout_session(session_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"No order for checkout session {session_id}")
    return _order_out(order)


@order_router.get("/{order_id}", response_model=OrderOut)
async def get_order(order_id: str) -> OrderOut:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_out(order)


# --- Maintenance endpoints ---


@cron_router.post("/cleanup-drafts", response_model=CleanupResponse)
async def cleanup_drafts(body: CleanupRequest | None = None) -> CleanupResponse:
    max_age_hours = body.max_age_hours if body else get_settings().draft_max_age_hours
    result = await DraftSweeper(get_providers()).cleanup(max_age_hours=max_age_hours)
    return CleanupResponse.model_validate(asdict(result))


# --- Webhook endpoints ---


@webhook_router.post("/stripe", response_model=WebhookResponse)
async def stripe_webhook(request: Request, stripe_signature: str = Header(default="")) -> WebhookResponse:
    body = (await request.body()).decode("utf-8")
    await _reconciler().handle_payment_webhook(body, stripe_signature)
    return WebhookResponse()


@webhook_router.post("/{provider_name}", response_model=WebhookResponse)
async def fulfillment_webhook(
    provider_name: str,
    request: Request,
    x_webhook_signature: str = Header(default=""),
) -> WebhookResponse:
    body = (await request.body()).decode("utf-8")
    await _reconciler().handle_fulfillment_webhook(provider_name, body, x_webhook_signature)
    return WebhookResponse()
