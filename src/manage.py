"""Marketplace management CLI.

Schema management for SQL-backed deployments plus one-shot triggers for the
abandoned draft cleanup and the provider catalogue sync, meant to be run from
cron or a Kubernetes CronJob.

Usage:
    python src/manage.py setup-db                          # Create all tables
    python src/manage.py drop-db                           # Drop all tables
    python src/manage.py cleanup-drafts --max-age-hours 48 # Cancel stale drafts
    python src/manage.py sync-products                     # Import provider store products
"""

import argparse
import asyncio
import sys


def setup_database():
    """Create the marketplace database schema."""
    from marketplace.domain import marketplace
    from marketplace.utils.db import setup_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Creating marketplace database schema...")
    setup_db(marketplace)
    print("Done.")


def drop_database():
    """Drop the marketplace database schema."""
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Dropping marketplace database schema...")
    drop_db(marketplace)
    print("Done.")


def cleanup_drafts(max_age_hours=None):
    """Cancel drafts of orders abandoned in checkout and report the outcome."""
    from marketplace.checkout.sweeper import DraftSweeper
    from marketplace.config import get_settings
    from marketplace.domain import marketplace
    from marketplace.fulfillment import get_providers

    if max_age_hours is None:
        max_age_hours = get_settings().draft_max_age_hours

    marketplace.init()
    with marketplace.domain_context():
        result = asyncio.run(DraftSweeper(get_providers()).cleanup(max_age_hours=max_age_hours))

    print(
        f"Processed {result.total_processed} order(s): "
        f"{result.cancelled} cancelled, "
        f"{result.partially_cancelled} partially cancelled, "
        f"{result.failed} failed."
    )
    for error in result.errors:
        print(f"  {error.order_id} [{error.provider}]: {error.error}")

    return result


def sync_products():
    """Import every registered provider's store products into the catalogue."""
    from marketplace.catalogue.sync import ProductSync
    from marketplace.domain import marketplace
    from marketplace.fulfillment import get_providers

    marketplace.init()
    with marketplace.domain_context():
        result = asyncio.run(ProductSync(get_providers()).run())

    print(f"Sync {result.status}: {result.count} product(s) imported.")
    return result


def main():
    parser = argparse.ArgumentParser(description="Marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    cleanup_parser = subparsers.add_parser("cleanup-drafts", help="Cancel drafts of abandoned checkouts")
    cleanup_parser.add_argument(
        "--max-age-hours",
        type=int,
        default=None,
        help="Age threshold in hours (default: DRAFT_MAX_AGE_HOURS, 24)",
    )

    subparsers.add_parser("sync-products", help="Import products from fulfillment provider stores")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "cleanup-drafts":
        result = cleanup_drafts(args.max_age_hours)
        if result.failed:
            sys.exit(1)
    elif args.command == "sync-products":
        sync_products()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
