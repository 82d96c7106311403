"""Storefront database management CLI.

Usage:
    python src/manage.py setup-db     # Create all tables
    python src/manage.py drop-db      # Drop all tables
    python src/manage.py seed-demo    # Insert a small demo catalog and vouchers
"""

import argparse
import os
import sys
from datetime import timedelta
from decimal import Decimal

from shared.clock import utcnow
from shared.config import Settings
from shared.db import build_engine, drop_db, setup_db, transaction
from shared.logging import configure_logging
from shared.tables import books, vouchers

DEMO_BOOKS = [
    {"title": "Domain-Driven Design", "category": "software", "price": Decimal("10.00")},
    {"title": "Refactoring", "category": "software", "price": Decimal("5.00")},
    {"title": "The Hobbit", "category": "fiction", "price": Decimal("8.50")},
    {"title": "Dune", "category": "fiction", "price": Decimal("12.00")},
]


def _demo_vouchers(now):
    window = {"valid_from": now - timedelta(days=1), "valid_to": now + timedelta(days=30)}
    return [
        {"code": "SAVE10", "type": "PERCENTAGE", "value": Decimal("10"), "max_discount": Decimal("20.00"), **window},
        {"code": "MINUS5", "type": "FIXED_AMOUNT", "value": Decimal("5.00"), "min_order_amount": Decimal("20.00"), **window},
        {"code": "FREESHIP", "type": "FREE_SHIP", "value": Decimal("5.00"), "usage_limit": 100, **window},
        {
            "code": "FICTION15",
            "type": "PERCENTAGE",
            "value": Decimal("15"),
            "applicable_categories": ["fiction"],
            "usage_limit": 10,
            **window,
        },
    ]


def seed_demo(engine):
    now = utcnow()
    with transaction(engine, "seed_demo") as conn:
        conn.execute(books.insert(), DEMO_BOOKS)
        for voucher in _demo_vouchers(now):
            conn.execute(vouchers.insert().values(**voucher))


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    parser.add_argument("--env", help="Configuration environment (default: $PROTEAN_ENV)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-demo", help="Insert demo books and vouchers")

    args = parser.parse_args()

    if args.env:
        os.environ["PROTEAN_ENV"] = args.env

    # The domain reads its configuration when it is first imported.
    from ordering.domain import ordering

    settings = Settings.from_domain(ordering)
    configure_logging(settings.env)
    engine = build_engine(settings.database_url, settings.database_echo)

    if args.command == "setup-db":
        print(f"Creating schema on {engine.url!r}...")
        setup_db(engine)
    elif args.command == "drop-db":
        print(f"Dropping schema on {engine.url!r}...")
        drop_db(engine)
    elif args.command == "seed-demo":
        print("Seeding demo data...")
        seed_demo(engine)
    else:
        parser.print_help()
        sys.exit(1)

    print("Done.")


if __name__ == "__main__":
    main()
