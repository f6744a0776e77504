"""Cancelling remote draft orders.

Used by the draft sweeper and by payment-session expiry. Each provider is
attempted independently: one provider refusing (e.g. the draft is already
printed) never prevents the others from being cancelled.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from marketplace.fulfillment.port import FulfillmentProvider
from marketplace.ordering.order import OrderStatus

logger = structlog.get_logger(__name__)

PROVIDER_NOT_FOUND = "Provider not found"


@dataclass(frozen=True)
class DraftCancellation:
    provider: str
    draft_order_id: str
    success: bool
    error: str | None = None


async def _cancel_one(provider: FulfillmentProvider, name: str, draft_order_id: str) -> DraftCancellation:
    await provider.cancel_order(draft_order_id)
    return DraftCancellation(provider=name, draft_order_id=draft_order_id, success=True)


async def cancel_remote_drafts(
    providers: Mapping[str, FulfillmentProvider],
    draft_order_ids: Mapping[str, str],
) -> list[DraftCancellation]:
    """Cancel every listed draft, returning one result per provider."""
    results: dict[str, DraftCancellation] = {}
    pending = []

    for name, draft_id in draft_order_ids.items():
        provider = providers.get(name)
        if provider is None:
            results[name] = DraftCancellation(provider=name, draft_order_id=draft_id, success=False, error=PROVIDER_NOT_FOUND)
        else:
            pending.append((name, draft_id, _cancel_one(provider, name, draft_id)))

    outcomes = await asyncio.gather(*(coro for _, _, coro in pending), return_exceptions=True)
    for (name, draft_id, _), outcome in zip(pending, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning("Draft cancellation failed", provider=name, draft_order_id=draft_id, error=str(outcome))
            results[name] = DraftCancellation(provider=name, draft_order_id=draft_id, success=False, error=str(outcome))
        else:
            results[name] = outcome

    return [results[name] for name in draft_order_ids]


def outcome_status(cancellations: list[DraftCancellation]) -> OrderStatus | None:
    """All succeeded → CANCELLED, some → PARTIALLY_CANCELLED, none → None (leave as is)."""
    succeeded = sum(1 for c in cancellations if c.success)
    if succeeded == len(cancellations):
        return OrderStatus.CANCELLED
    if succeeded > 0:
        return OrderStatus.PARTIALLY_CANCELLED
    return None
