"""Checkout orchestrator — multi-provider quoting and the checkout saga.

Quoting fans out to every provider in the cart concurrently and fails as a
whole if any provider fails or offers no rate. Checkout is a sequential saga
with no rollback:

    1. create the local order (pending)
    2. create a draft order at each provider, recording each id as it lands
    3. create one payment session for the aggregate total
    4. record the session and draft ids, then move the order to draft_created

A failure after step 1 leaves the order pending with whichever drafts were
already created. Those are reconciled later by the draft sweeper.
"""

import asyncio
import json
from collections.abc import Callable, Mapping

import structlog
from protean.utils.globals import current_domain

from marketplace.catalogue.product import MANUAL_PROVIDER, Product
from marketplace.checkout.buckets import (
    ProviderBucket,
    build_recipient,
    resolve_buckets,
    to_fulfillment_items,
)
from marketplace.checkout.errors import ProviderCallFailed, ProviderNotConfigured, ShippingRateMissing
from marketplace.checkout.models import (
    CartItem,
    CheckoutRequest,
    CheckoutResult,
    DeliveryWindow,
    ProviderBreakdown,
    Quote,
    ShippingAddress,
    ShippingOption,
)
from marketplace.fulfillment.port import (
    FulfillmentOrderRequest,
    FulfillmentProvider,
    Recipient,
    ShippingQuoteRequest,
)
from marketplace.ordering.checkout_progress import (
    AttachCheckoutSession,
    MarkDraftCreated,
    RecordDraftOrder,
    RecordDraftOrders,
)
from marketplace.ordering.placement import PlaceOrder
from marketplace.payments.port import CheckoutSessionRequest, PaymentGateway, PaymentLineItem
from marketplace.utils.money import round_money, to_minor_units

logger = structlog.get_logger(__name__)

MANUAL_RATE_ID = "manual-standard"


def manual_shipping(currency: str) -> ShippingOption:
    """The flat rate offered for locally fulfilled items."""
    return ShippingOption(
        provider=MANUAL_PROVIDER,
        rate_id=MANUAL_RATE_ID,
        rate_name="Standard Shipping",
        shipping_cost=0.0,
        currency=currency,
        min_delivery_days=5,
        max_delivery_days=10,
    )


def _find_in_catalogue(product_id: str) -> Product | None:
    return current_domain.repository_for(Product).find_product(product_id)


class CheckoutOrchestrator:
    def __init__(
        self,
        providers: Mapping[str, FulfillmentProvider],
        payment_gateway: PaymentGateway | None,
        currency: str = "USD",
        find_product: Callable[[str], Product | None] | None = None,
    ) -> None:
        self.providers = providers
        self.payment_gateway = payment_gateway
        self.currency = currency
        self._find_product = find_product or _find_in_catalogue

    def _provider_for(self, name: str) -> FulfillmentProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderNotConfigured(f"Provider not configured: {name}", provider=name)
        return provider

    # -------------------------------------------------------------------
    # Quote
    # -------------------------------------------------------------------
    async def get_quote(self, items: list[CartItem], address: ShippingAddress) -> Quote:
        buckets, subtotal = resolve_buckets(items, self._find_product)

        # Every provider must be configured before any remote call goes out
        remote = [b for b in buckets.values() if b.provider != MANUAL_PROVIDER]
        for bucket in remote:
            self._provider_for(bucket.provider)

        recipient = build_recipient(address)
        quoted = await asyncio.gather(*(self._quote_bucket(b, recipient) for b in remote))
        options_by_provider = dict(zip([b.provider for b in remote], quoted, strict=True))

        breakdown = []
        for bucket in buckets.values():
            if bucket.provider == MANUAL_PROVIDER:
                available = [manual_shipping(self.currency)]
            else:
                available = options_by_provider[bucket.provider]

            selected = min(available, key=lambda option: option.shipping_cost)
            breakdown.append(
                ProviderBreakdown(
                    provider=bucket.provider,
                    item_count=bucket.item_count,
                    subtotal=bucket.subtotal,
                    selected_shipping=selected,
                    available_rates=available,
                )
            )

        shipping_cost = round_money(sum(b.selected_shipping.shipping_cost for b in breakdown))

        min_days = [b.selected_shipping.min_delivery_days for b in breakdown if b.selected_shipping.min_delivery_days is not None]
        max_days = [b.selected_shipping.max_delivery_days for b in breakdown if b.selected_shipping.max_delivery_days is not None]
        estimate = DeliveryWindow(min_days=min(min_days), max_days=max(max_days)) if min_days and max_days else None

        quote = Quote(
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total=round_money(subtotal + shipping_cost),
            currency=self.currency,
            provider_breakdown=breakdown,
            estimated_delivery=estimate,
        )
        logger.info(
            "Quote computed",
            providers=[b.provider for b in breakdown],
            subtotal=quote.subtotal,
            shipping_cost=quote.shipping_cost,
        )
        return quote

    async def _quote_bucket(self, bucket: ProviderBucket, recipient: Recipient) -> list[ShippingOption]:
        name = bucket.provider
        provider = self._provider_for(name)
        request = ShippingQuoteRequest(
            recipient=recipient,
            items=to_fulfillment_items(bucket),
            currency=self.currency,
        )

        try:
            result = await provider.quote_order(request)
        except Exception as exc:
            logger.warning("Shipping quote failed", provider=name, error=str(exc))
            raise ProviderCallFailed(f"Failed to get quote from {name}: {exc}", provider=name) from exc

        if not result.rates:
            raise ProviderCallFailed(f"No shipping rates available from {name}", provider=name)

        return [
            ShippingOption(
                provider=name,
                rate_id=rate.id,
                rate_name=rate.name,
                shipping_cost=rate.rate,
                currency=rate.currency,
                min_delivery_days=rate.min_delivery_days,
                max_delivery_days=rate.max_delivery_days,
            )
            for rate in result.rates
        ]

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    async def create_checkout(self, request: CheckoutRequest) -> CheckoutResult:
        buckets, subtotal = resolve_buckets(request.items, self._find_product)

        # Caller-supplied shipping cost is trusted as-is
        total_amount = round_money(subtotal + request.shipping_cost)

        order_id = current_domain.process(
            PlaceOrder(
                user_id=request.user_id,
                items=json.dumps([i.snapshot(b.provider) for b in buckets.values() for i in b.items]),
                total_amount=total_amount,
                currency=self.currency,
                shipping_address=json.dumps(request.address.as_dict()),
                shipping_methods=json.dumps(dict(request.selected_rates)),
            ),
            asynchronous=False,
        )
        log = logger.bind(order_id=order_id, user_id=request.user_id)
        log.info("Checkout started", providers=list(buckets), total_amount=total_amount)

        recipient = build_recipient(request.address)
        draft_order_ids: dict[str, str] = {}

        for bucket in buckets.values():
            name = bucket.provider
            if name == MANUAL_PROVIDER:
                continue

            rate_id = request.selected_rates.get(name)
            if not rate_id:
                raise ShippingRateMissing(f"No shipping rate selected for provider: {name}", provider=name)

            provider = self._provider_for(name)
            try:
                draft = await provider.create_order(
                    FulfillmentOrderRequest(
                        external_id=order_id,
                        recipient=recipient,
                        items=to_fulfillment_items(bucket),
                        currency=self.currency,
                        shipping_method=rate_id,
                    )
                )
            except Exception as exc:
                log.warning("Draft order creation failed", provider=name, error=str(exc))
                raise ProviderCallFailed(f"Failed to create draft order at {name}: {exc}", provider=name) from exc

            draft_order_ids[name] = draft.id
            current_domain.process(
                RecordDraftOrder(order_id=order_id, provider=name, draft_order_id=draft.id),
                asynchronous=False,
            )
            log.info("Draft order created", provider=name, draft_order_id=draft.id)

        if self.payment_gateway is None:
            raise ProviderNotConfigured("Payment provider not configured", provider="payment")

        gateway = self.payment_gateway
        try:
            session = await gateway.create_checkout(
                CheckoutSessionRequest(
                    order_id=order_id,
                    amount=to_minor_units(total_amount),
                    currency=self.currency,
                    items=self._payment_line_items(buckets, request.shipping_cost),
                    success_url=request.success_url,
                    cancel_url=request.cancel_url,
                    metadata={"draftOrderIds": json.dumps(draft_order_ids)},
                    customer_email=request.address.email,
                )
            )
        except Exception as exc:
            log.warning("Payment session creation failed", provider=gateway.name, error=str(exc))
            raise ProviderCallFailed(f"Failed to create payment checkout: {exc}", provider=gateway.name) from exc

        current_domain.process(
            AttachCheckoutSession(
                order_id=order_id,
                checkout_session_id=session.session_id,
                checkout_provider=gateway.name,
            ),
            asynchronous=False,
        )
        current_domain.process(
            RecordDraftOrders(order_id=order_id, draft_order_ids=json.dumps(draft_order_ids)),
            asynchronous=False,
        )
        current_domain.process(MarkDraftCreated(order_id=order_id), asynchronous=False)

        log.info("Checkout created", checkout_session_id=session.session_id, draft_order_ids=draft_order_ids)
        return CheckoutResult(
            order_id=order_id,
            checkout_session_id=session.session_id,
            checkout_url=session.url,
            draft_order_ids=draft_order_ids,
        )

    def _payment_line_items(self, buckets: dict[str, ProviderBucket], shipping_cost: float) -> tuple[PaymentLineItem, ...]:
        """One line per catalogue line plus a single aggregate shipping line."""
        line_items = [
            PaymentLineItem(
                name=resolved.product.name,
                description=resolved.product.description,
                image=resolved.product.primary_image_url,
                unit_amount=to_minor_units(resolved.unit_price),
                quantity=resolved.cart_item.quantity,
            )
            for bucket in buckets.values()
            for resolved in bucket.items
        ]
        if shipping_cost > 0:
            line_items.append(PaymentLineItem(name="Shipping", unit_amount=to_minor_units(shipping_cost), quantity=1))
        return tuple(line_items)
