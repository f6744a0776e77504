"""Order lifecycle — commands applied by the sweeper and by webhook reconciliation."""

import json

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.ordering.order import Order


@marketplace.command(part_of="Order")
class CancelAbandonedOrder:
    """Close a draft-stage order whose remote drafts were (at least partly) cancelled."""

    order_id: Identifier(required=True)
    partial: Boolean(default=False)
    reason: String(max_length=500)


@marketplace.command(part_of="Order")
class MarkOrderPaid:
    order_id: Identifier(required=True)


@marketplace.command(part_of="Order")
class MarkAwaitingFulfillment:
    order_id: Identifier(required=True)
    reason: String(max_length=500)


@marketplace.command(part_of="Order")
class MarkOrderProcessing:
    order_id: Identifier(required=True)
    fulfillment_order_id: String(max_length=255)


@marketplace.command(part_of="Order")
class RecordShipment:
    order_id: Identifier(required=True)
    tracking: Text()  # JSON list of {carrier, trackingNumber, trackingUrl}
    min_delivery_days: Integer()
    max_delivery_days: Integer()
    estimated_delivery: DateTime()


@marketplace.command(part_of="Order")
class MarkOrderDelivered:
    order_id: Identifier(required=True)


@marketplace.command(part_of="Order")
class RefundOrder:
    order_id: Identifier(required=True)
    reason: String(max_length=500)


@marketplace.command(part_of="Order")
class UpdateDeliveryEstimate:
    order_id: Identifier(required=True)
    min_days: Integer()
    max_days: Integer()
    estimated_date: DateTime()


@marketplace.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(CancelAbandonedOrder)
    def cancel_abandoned(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel_abandoned(partial=bool(command.partial), reason=command.reason)
        repo.add(order)

    @handle(MarkOrderPaid)
    def mark_paid(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_paid()
        repo.add(order)

    @handle(MarkAwaitingFulfillment)
    def mark_awaiting_fulfillment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_awaiting_fulfillment(reason=command.reason)
        repo.add(order)

    @handle(MarkOrderProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_processing(fulfillment_order_id=command.fulfillment_order_id)
        repo.add(order)

    @handle(RecordShipment)
    def record_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_shipment(
            tracking=json.loads(command.tracking) if command.tracking else None,
            min_delivery_days=command.min_delivery_days,
            max_delivery_days=command.max_delivery_days,
            estimated_delivery=command.estimated_delivery,
        )
        repo.add(order)

    @handle(MarkOrderDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered()
        repo.add(order)

    @handle(RefundOrder)
    def refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.refund(reason=command.reason)
        repo.add(order)

    @handle(UpdateDeliveryEstimate)
    def update_delivery_estimate(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_delivery_estimate(
            min_days=command.min_days,
            max_days=command.max_days,
            estimated_date=command.estimated_date,
        )
        repo.add(order)
