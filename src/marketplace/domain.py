"""Marketplace bounded context — catalogue, orders and multi-provider checkout.

Products are fulfilled by print-on-demand providers (Printful, Gelato) or
locally ("manual"); payment is collected through a hosted checkout session
(Stripe). The checkout orchestrator keeps the local Order consistent with
the remote drafts it creates at each provider.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
