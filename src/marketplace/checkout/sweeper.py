"""Abandoned draft cleanup.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob) via the maintenance API endpoint or ``manage.py cleanup-drafts``.
Finds orders still in ``draft_created`` past the age threshold, cancels their
drafts at every provider and closes the order according to how many
cancellations went through. Orders where nothing could be cancelled are left
untouched so the next run retries them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from protean.exceptions import InvalidOperationError, ValidationError
from protean.utils.globals import current_domain

from marketplace.checkout.cancellation import cancel_remote_drafts, outcome_status
from marketplace.fulfillment.port import FulfillmentProvider
from marketplace.ordering.lifecycle import CancelAbandonedOrder
from marketplace.ordering.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CleanupError:
    order_id: str
    provider: str
    error: str


@dataclass
class CleanupResult:
    total_processed: int = 0
    cancelled: int = 0
    partially_cancelled: int = 0
    failed: int = 0
    errors: list[CleanupError] = field(default_factory=list)


class DraftSweeper:
    def __init__(self, providers: Mapping[str, FulfillmentProvider]) -> None:
        self.providers = providers

    async def cleanup(self, max_age_hours: int = 24, as_of: datetime | None = None) -> CleanupResult:
        orders = current_domain.repository_for(Order).find_abandoned_drafts(max_age_hours, as_of=as_of)
        logger.info("Checking for abandoned draft orders", max_age_hours=max_age_hours, found=len(orders))

        result = CleanupResult(total_processed=len(orders))
        for order in orders:
            await self._sweep(order, result)

        logger.info(
            "Draft cleanup complete",
            total_processed=result.total_processed,
            cancelled=result.cancelled,
            partially_cancelled=result.partially_cancelled,
            failed=result.failed,
        )
        return result

    async def _sweep(self, order: Order, result: CleanupResult) -> None:
        order_id = str(order.id)
        cancellations = await cancel_remote_drafts(self.providers, order.draft_orders)

        for c in cancellations:
            if not c.success:
                result.errors.append(CleanupError(order_id=order_id, provider=c.provider, error=c.error or "Unknown error"))

        status = outcome_status(cancellations)
        if status is None:
            result.failed += 1
            logger.warning("Could not cancel any draft for order", order_id=order_id, providers=list(order.draft_orders))
            return

        try:
            current_domain.process(
                CancelAbandonedOrder(
                    order_id=order_id,
                    partial=status == OrderStatus.PARTIALLY_CANCELLED,
                    reason="Checkout abandoned",
                ),
                asynchronous=False,
            )
        except (ValidationError, InvalidOperationError) as exc:
            result.failed += 1
            result.errors.append(CleanupError(order_id=order_id, provider="local", error=str(exc)))
            logger.warning("Failed to close abandoned order", order_id=order_id, error=str(exc))
            return

        if status == OrderStatus.CANCELLED:
            result.cancelled += 1
        else:
            result.partially_cancelled += 1
        logger.info("Abandoned order closed", order_id=order_id, status=status.value)
