"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A checkout was confirmed and the local order record exists."""

    __version__ = 1

    order_id: Identifier(required=True)
    user_id: String(required=True)
    total_amount: Float(required=True)
    currency: String(required=True)
    item_count: Integer(required=True)
    fulfillment_reference_id: String(required=True)
    created_at: DateTime(required=True)


@marketplace.event(part_of="Order")
class DraftOrderRecorded:
    """A fulfillment provider accepted a draft order for this order."""

    __version__ = 1

    order_id: Identifier(required=True)
    provider: String(required=True)
    draft_order_id: String(required=True)


@marketplace.event(part_of="Order")
class CheckoutSessionAttached:
    __version__ = 1

    order_id: Identifier(required=True)
    checkout_session_id: String(required=True)
    checkout_provider: String(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """Raised on every lifecycle transition."""

    __version__ = 1

    order_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    reason: String()
    changed_at: DateTime(required=True)


@marketplace.event(part_of="Order")
class ShipmentRecorded:
    __version__ = 1

    order_id: Identifier(required=True)
    tracking_info: Text()  # JSON
    shipped_at: DateTime(required=True)


@marketplace.event(part_of="Order")
class DeliveryEstimateUpdated:
    __version__ = 1

    order_id: Identifier(required=True)
    min_days: Integer()
    max_days: Integer()
    estimated_date: DateTime()
