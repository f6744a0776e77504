"""Order aggregate (CQRS) — the record the checkout saga writes to.

An order is created once per checkout confirmation and never deleted.
Remote state is tracked through reference ids: the payment session id and a
provider → draft order id map filled in as each draft is created.

State Machine:
    PENDING → DRAFT_CREATED → PAID → (PAID_PENDING_FULFILLMENT) → PROCESSING → SHIPPED → DELIVERED
    DRAFT_CREATED → CANCELLED | PARTIALLY_CANCELLED
    {PAID, PAID_PENDING_FULFILLMENT, PROCESSING} → REFUNDED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.ordering.events import (
    CheckoutSessionAttached,
    DeliveryEstimateUpdated,
    DraftOrderRecorded,
    OrderPlaced,
    OrderStatusChanged,
    ShipmentRecorded,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    DRAFT_CREATED = "draft_created"
    PAID = "paid"
    PAID_PENDING_FULFILLMENT = "paid_pending_fulfillment"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PARTIALLY_CANCELLED = "partially_cancelled"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.DRAFT_CREATED},
    OrderStatus.DRAFT_CREATED: {
        OrderStatus.PAID,
        OrderStatus.CANCELLED,
        OrderStatus.PARTIALLY_CANCELLED,
    },
    OrderStatus.PAID: {
        OrderStatus.PAID_PENDING_FULFILLMENT,
        OrderStatus.PROCESSING,
        OrderStatus.REFUNDED,
    },
    OrderStatus.PAID_PENDING_FULFILLMENT: {OrderStatus.PROCESSING, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
    OrderStatus.PARTIALLY_CANCELLED: set(),  # terminal
    OrderStatus.REFUNDED: set(),  # terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class Address:
    """Shipping address snapshot taken at checkout."""

    first_name: String(max_length=100)
    last_name: String(max_length=100)
    company_name: String(max_length=200)
    address_line1: String(required=True, max_length=255)
    address_line2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    post_code: String(max_length=20)
    country: String(required=True, max_length=2)
    email: String(required=True, max_length=255)
    phone: String(max_length=50)


@marketplace.value_object(part_of="Order")
class DeliveryEstimate:
    min_days: Integer(min_value=0)
    max_days: Integer(min_value=0)
    estimated_date: DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """Frozen copy of the catalogue line as it was when the order was placed."""

    product_id: Identifier(required=True)
    variant_id: Identifier()
    product_name: String(required=True, max_length=255)
    variant_name: String(max_length=255)
    description: Text()
    image_url: String(max_length=500)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="USD")
    attributes: Text()
    fulfillment_provider: String(max_length=50)
    fulfillment_config: Text()  # JSON snapshot of the variant's provider binding


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    user_id: String(required=True, max_length=255)
    status: String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    total_amount: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="USD")
    checkout_session_id: String(max_length=255)
    checkout_provider: String(max_length=50)
    draft_order_ids: Text()  # JSON object: provider name → draft order id
    shipping_methods: Text()  # JSON object: provider name → selected rate id
    shipping_address: ValueObject(Address)
    fulfillment_order_id: String(max_length=255)
    fulfillment_reference_id: String(max_length=255)
    tracking_info: Text()  # JSON list of {carrier, trackingNumber, trackingUrl}
    delivery_estimate: ValueObject(DeliveryEstimate)
    items: HasMany(OrderItem)
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id: str,
        items_data: list[dict],
        total_amount: float,
        currency: str = "USD",
        shipping_address: Address | None = None,
        shipping_methods: dict[str, str] | None = None,
    ):
        """Create a pending order with its line items."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=total_amount,
            currency=currency,
            shipping_address=shipping_address,
            shipping_methods=json.dumps(shipping_methods or {}),
            draft_order_ids=json.dumps({}),
            fulfillment_reference_id=f"order_{int(now.timestamp() * 1000)}_{user_id}",
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=user_id,
                total_amount=total_amount,
                currency=currency,
                item_count=len(items_data),
                fulfillment_reference_id=order.fulfillment_reference_id,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def draft_orders(self) -> dict[str, str]:
        return json.loads(self.draft_order_ids) if self.draft_order_ids else {}

    @property
    def selected_rates(self) -> dict[str, str]:
        return json.loads(self.shipping_methods) if self.shipping_methods else {}

    @property
    def tracking(self) -> list[dict]:
        return json.loads(self.tracking_info) if self.tracking_info else []

    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_pending(self, action: str) -> None:
        if self.status != OrderStatus.PENDING.value:
            raise ValidationError({"status": [f"Cannot {action} when order is {self.status}"]})

    def _transition(self, target_status: OrderStatus, reason: str | None = None) -> None:
        self._assert_can_transition(target_status)
        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target_status.value,
                reason=reason,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Checkout progress
    # -------------------------------------------------------------------
    def record_draft_order(self, provider: str, draft_order_id: str) -> None:
        """Remember one provider's draft as soon as it exists remotely."""
        self._assert_pending("record a draft order")
        drafts = self.draft_orders
        drafts[provider] = draft_order_id
        self.draft_order_ids = json.dumps(drafts)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            DraftOrderRecorded(
                order_id=str(self.id),
                provider=provider,
                draft_order_id=draft_order_id,
            )
        )

    def replace_draft_orders(self, draft_order_ids: dict[str, str]) -> None:
        self._assert_pending("record draft orders")
        self.draft_order_ids = json.dumps(dict(draft_order_ids))
        self.updated_at = datetime.now(UTC)

    def attach_checkout_session(self, session_id: str, provider: str) -> None:
        self._assert_pending("attach a checkout session")
        self.checkout_session_id = session_id
        self.checkout_provider = provider
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CheckoutSessionAttached(
                order_id=str(self.id),
                checkout_session_id=session_id,
                checkout_provider=provider,
            )
        )

    def mark_draft_created(self) -> None:
        self._transition(OrderStatus.DRAFT_CREATED)

    # -------------------------------------------------------------------
    # Abandonment
    # -------------------------------------------------------------------
    def cancel_abandoned(self, partial: bool = False, reason: str | None = None) -> None:
        target = OrderStatus.PARTIALLY_CANCELLED if partial else OrderStatus.CANCELLED
        self._transition(target, reason=reason)

    # -------------------------------------------------------------------
    # Payment and fulfillment
    # -------------------------------------------------------------------
    def mark_paid(self) -> None:
        self._transition(OrderStatus.PAID)

    def mark_awaiting_fulfillment(self, reason: str | None = None) -> None:
        self._transition(OrderStatus.PAID_PENDING_FULFILLMENT, reason=reason)

    def mark_processing(self, fulfillment_order_id: str | None = None) -> None:
        self._transition(OrderStatus.PROCESSING)
        if fulfillment_order_id:
            self.fulfillment_order_id = fulfillment_order_id

    def record_shipment(
        self,
        tracking: list[dict] | None = None,
        min_delivery_days: int | None = None,
        max_delivery_days: int | None = None,
        estimated_delivery: datetime | None = None,
    ) -> None:
        """Move to SHIPPED and append the carrier tracking entries."""
        self._transition(OrderStatus.SHIPPED)

        entries = self.tracking + list(tracking or [])
        self.tracking_info = json.dumps(entries)
        if min_delivery_days is not None or max_delivery_days is not None or estimated_delivery is not None:
            self.delivery_estimate = DeliveryEstimate(
                min_days=min_delivery_days,
                max_days=max_delivery_days,
                estimated_date=estimated_delivery,
            )

        self.raise_(
            ShipmentRecorded(
                order_id=str(self.id),
                tracking_info=self.tracking_info,
                shipped_at=self.updated_at,
            )
        )

    def mark_delivered(self) -> None:
        self._transition(OrderStatus.DELIVERED)

    def refund(self, reason: str | None = None) -> None:
        self._transition(OrderStatus.REFUNDED, reason=reason)

    def update_delivery_estimate(
        self,
        min_days: int | None = None,
        max_days: int | None = None,
        estimated_date: datetime | None = None,
    ) -> None:
        if min_days is not None and max_days is not None and min_days > max_days:
            raise ValidationError({"delivery_estimate": ["Minimum delivery days cannot exceed maximum"]})

        self.delivery_estimate = DeliveryEstimate(
            min_days=min_days,
            max_days=max_days,
            estimated_date=estimated_date,
        )
        self.updated_at = datetime.now(UTC)
        self.raise_(
            DeliveryEstimateUpdated(
                order_id=str(self.id),
                min_days=min_days,
                max_days=max_days,
                estimated_date=estimated_date,
            )
        )
