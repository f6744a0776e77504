"""Checkout progress — commands that record remote references on a pending order.

Each step of the checkout saga persists its result before the next remote
call is issued, so a failure leaves the order showing exactly how far it got.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.ordering.order import Order


@marketplace.command(part_of="Order")
class RecordDraftOrder:
    order_id: Identifier(required=True)
    provider: String(required=True, max_length=50)
    draft_order_id: String(required=True, max_length=255)


@marketplace.command(part_of="Order")
class RecordDraftOrders:
    order_id: Identifier(required=True)
    draft_order_ids: Text(required=True)  # JSON object: provider → draft id


@marketplace.command(part_of="Order")
class AttachCheckoutSession:
    order_id: Identifier(required=True)
    checkout_session_id: String(required=True, max_length=255)
    checkout_provider: String(required=True, max_length=50)


@marketplace.command(part_of="Order")
class MarkDraftCreated:
    order_id: Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class CheckoutProgressHandler:
    @handle(RecordDraftOrder)
    def record_draft_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_draft_order(command.provider, command.draft_order_id)
        repo.add(order)

    @handle(RecordDraftOrders)
    def record_draft_orders(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.replace_draft_orders(json.loads(command.draft_order_ids))
        repo.add(order)

    @handle(AttachCheckoutSession)
    def attach_checkout_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_checkout_session(command.checkout_session_id, command.checkout_provider)
        repo.add(order)

    @handle(MarkDraftCreated)
    def mark_draft_created(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_draft_created()
        repo.add(order)
