"""Order Store queries.

Mutations go through the ordering commands; this repository only adds the
lookups reconciliation and the sweeper need.
"""

from datetime import UTC, datetime, timedelta

from marketplace.domain import marketplace
from marketplace.ordering.order import Order, OrderStatus


def _as_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


@marketplace.repository(part_of=Order)
class OrderRepository:
    def find_by_checkout_session(self, session_id: str) -> Order | None:
        return self._dao.query.filter(checkout_session_id=session_id).all().first

    def find_by_fulfillment_reference(self, reference_id: str) -> Order | None:
        return self._dao.query.filter(fulfillment_reference_id=reference_id).all().first

    def find_by_user(self, user_id: str, limit: int = 10, offset: int = 0) -> tuple[list[Order], int]:
        """A user's orders, newest first, with the total count for paging."""
        orders = self._dao.query.filter(user_id=user_id).limit(None).all().items
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[offset : offset + limit], len(orders)

    def find_abandoned_drafts(self, max_age_hours: int = 24, as_of: datetime | None = None) -> list[Order]:
        """Orders stuck in ``draft_created`` for longer than ``max_age_hours``.

        Age is measured from creation and compared here, after fetching every
        draft-stage order, rather than in the store.
        """
        cutoff = _as_utc_naive((as_of or datetime.now(UTC)) - timedelta(hours=max_age_hours))

        drafts = self._dao.query.filter(status=OrderStatus.DRAFT_CREATED.value).limit(None).all().items
        return [order for order in drafts if order.created_at and _as_utc_naive(order.created_at) < cutoff]
