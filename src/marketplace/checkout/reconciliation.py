"""Webhook reconciliation — bringing orders in line with remote state.

Payment webhooks decide the fate of the drafts created at checkout: a
completed session confirms them for production, an expired session cancels
them. Fulfillment webhooks move paid orders through processing, shipping
and delivery.

Webhooks can arrive late, twice, or out of order. Transitions the order
cannot take from its current status are logged and skipped, and unknown
orders are acknowledged so the sender stops retrying.
"""

import asyncio
import json
from collections.abc import Mapping

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.checkout.cancellation import cancel_remote_drafts, outcome_status
from marketplace.checkout.errors import InvalidWebhookSignature, ProviderNotConfigured
from marketplace.fulfillment.port import FulfillmentProvider, FulfillmentWebhookEvent
from marketplace.ordering.lifecycle import (
    CancelAbandonedOrder,
    MarkAwaitingFulfillment,
    MarkOrderDelivered,
    MarkOrderPaid,
    MarkOrderProcessing,
    RecordShipment,
    UpdateDeliveryEstimate,
)
from marketplace.ordering.order import Order, OrderStatus
from marketplace.payments.port import PaymentGateway, PaymentWebhookEvent

logger = structlog.get_logger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
SESSION_EXPIRED = "checkout.session.expired"


class WebhookReconciler:
    def __init__(
        self,
        providers: Mapping[str, FulfillmentProvider],
        payment_gateway: PaymentGateway | None,
    ) -> None:
        self.providers = providers
        self.payment_gateway = payment_gateway

    # -------------------------------------------------------------------
    # Payment webhooks
    # -------------------------------------------------------------------
    async def handle_payment_webhook(self, body: str, signature: str) -> PaymentWebhookEvent:
        if self.payment_gateway is None:
            raise ProviderNotConfigured("Payment provider not configured", provider="payment")

        event = self.payment_gateway.verify_webhook(body, signature)
        logger.info("Payment webhook received", event_type=event.event_type, session_id=event.session_id)

        if event.event_type == SESSION_COMPLETED:
            await self._payment_completed(event)
        elif event.event_type == SESSION_EXPIRED:
            await self._payment_expired(event)
        else:
            logger.debug("Ignoring payment event", event_type=event.event_type)
        return event

    def _order_for_session(self, event: PaymentWebhookEvent) -> Order | None:
        repo = current_domain.repository_for(Order)
        order = repo.find_by_checkout_session(event.session_id) if event.session_id else None
        if order is None and event.order_id:
            try:
                order = repo.get(event.order_id)
            except ObjectNotFoundError:
                order = None
        return order

    async def _payment_completed(self, event: PaymentWebhookEvent) -> None:
        order = self._order_for_session(event)
        if order is None:
            logger.warning("No order for completed session", session_id=event.session_id, order_id=event.order_id)
            return
        if order.status != OrderStatus.DRAFT_CREATED.value:
            logger.info("Order already reconciled", order_id=str(order.id), status=order.status)
            return

        order_id = str(order.id)
        current_domain.process(MarkOrderPaid(order_id=order_id), asynchronous=False)

        drafts = order.draft_orders
        if event.metadata.get("draftOrderIds"):
            drafts = json.loads(event.metadata["draftOrderIds"])

        failed = await self._confirm_drafts(order_id, drafts)
        if failed:
            current_domain.process(
                MarkAwaitingFulfillment(
                    order_id=order_id,
                    reason=f"Draft confirmation failed at: {', '.join(sorted(failed))}",
                ),
                asynchronous=False,
            )
            logger.warning("Order paid but not all drafts confirmed", order_id=order_id, failed=sorted(failed))
            return

        fulfillment_order_id = next(iter(drafts.values())) if len(drafts) == 1 else None
        current_domain.process(
            MarkOrderProcessing(order_id=order_id, fulfillment_order_id=fulfillment_order_id),
            asynchronous=False,
        )
        logger.info("Order paid and drafts confirmed", order_id=order_id, providers=list(drafts))

    async def _confirm_drafts(self, order_id: str, drafts: Mapping[str, str]) -> list[str]:
        """Confirm every draft; return the providers that could not be confirmed."""
        failed = [name for name in drafts if name not in self.providers]
        confirmable = [(name, draft_id) for name, draft_id in drafts.items() if name in self.providers]

        outcomes = await asyncio.gather(
            *(self.providers[name].confirm_order(draft_id) for name, draft_id in confirmable),
            return_exceptions=True,
        )
        for (name, draft_id), outcome in zip(confirmable, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.warning(
                    "Draft confirmation failed",
                    order_id=order_id,
                    provider=name,
                    draft_order_id=draft_id,
                    error=str(outcome),
                )
                failed.append(name)
            elif isinstance(outcome, BaseException):
                raise outcome
        return failed

    async def _payment_expired(self, event: PaymentWebhookEvent) -> None:
        order = self._order_for_session(event)
        if order is None or order.status != OrderStatus.DRAFT_CREATED.value:
            logger.info("Nothing to release for expired session", session_id=event.session_id)
            return

        order_id = str(order.id)
        cancellations = await cancel_remote_drafts(self.providers, order.draft_orders)
        status = outcome_status(cancellations)
        if status is None:
            logger.warning("Could not cancel drafts for expired session", order_id=order_id)
            return

        current_domain.process(
            CancelAbandonedOrder(
                order_id=order_id,
                partial=status == OrderStatus.PARTIALLY_CANCELLED,
                reason="Payment session expired",
            ),
            asynchronous=False,
        )
        logger.info("Expired checkout released", order_id=order_id, status=status.value)

    # -------------------------------------------------------------------
    # Fulfillment webhooks
    # -------------------------------------------------------------------
    async def handle_fulfillment_webhook(self, provider_name: str, body: str, signature: str) -> FulfillmentWebhookEvent:
        provider = self.providers.get(provider_name)
        if provider is None:
            raise ProviderNotConfigured(f"Provider not configured: {provider_name}", provider=provider_name)
        if not provider.verify_webhook_signature(body, signature):
            raise InvalidWebhookSignature("Invalid webhook signature", provider=provider_name)

        event = provider.parse_webhook(body)
        logger.info(
            "Fulfillment webhook received",
            provider=provider_name,
            event_type=event.event_type,
            external_id=event.external_id,
        )

        order = self._order_for_reference(event.external_id)
        if order is None:
            logger.warning("No order for fulfillment event", provider=provider_name, external_id=event.external_id)
            return event

        command = self._command_for(str(order.id), event)
        if command is None:
            logger.debug("Ignoring fulfillment event", provider=provider_name, event_type=event.event_type)
            return event

        try:
            current_domain.process(command, asynchronous=False)
        except ValidationError as exc:
            logger.info(
                "Skipping fulfillment event for current order status",
                order_id=str(order.id),
                status=order.status,
                event_type=event.event_type,
                error=str(exc),
            )
        return event

    def _order_for_reference(self, reference: str | None) -> Order | None:
        if not reference:
            return None
        repo = current_domain.repository_for(Order)
        try:
            return repo.get(reference)
        except ObjectNotFoundError:
            return repo.find_by_fulfillment_reference(reference)

    def _command_for(self, order_id: str, event: FulfillmentWebhookEvent):
        if event.event_type == "shipped":
            return RecordShipment(
                order_id=order_id,
                tracking=json.dumps(event.shipments),
                min_delivery_days=event.min_delivery_days,
                max_delivery_days=event.max_delivery_days,
            )
        if event.event_type == "delivered":
            return MarkOrderDelivered(order_id=order_id)
        if event.event_type in ("processing", "printing"):
            return MarkOrderProcessing(order_id=order_id, fulfillment_order_id=event.provider_order_id)
        if event.event_type == "delivery_estimate":
            return UpdateDeliveryEstimate(
                order_id=order_id,
                min_days=event.min_delivery_days,
                max_days=event.max_delivery_days,
            )
        return None
