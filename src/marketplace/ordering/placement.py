"""Order placement — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Float, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.ordering.order import Address, Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    user_id: String(required=True, max_length=255)
    items: Text(required=True)  # JSON list of line item snapshots
    total_amount: Float(required=True)
    currency: String(max_length=3, default="USD")
    shipping_address: Text()  # JSON object
    shipping_methods: Text()  # JSON object: provider → rate id


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items)

        address = None
        if command.shipping_address:
            address = Address(**json.loads(command.shipping_address))

        order = Order.create(
            user_id=command.user_id,
            items_data=items_data,
            total_amount=command.total_amount,
            currency=command.currency or "USD",
            shipping_address=address,
            shipping_methods=json.loads(command.shipping_methods) if command.shipping_methods else None,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=command.user_id,
            total_amount=command.total_amount,
            item_count=len(items_data),
        )
        return str(order.id)
