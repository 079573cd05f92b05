"""Farmlink ordering management CLI.

Usage:
    python src/manage.py setup-db        # Create all tables
    python src/manage.py drop-db         # Drop all tables
    python src/manage.py flush-outbox    # Re-send pending and failed emails
"""

import argparse
import sys


def _domain():
    from ordering.domain import ordering

    print("Initializing ordering domain...")
    ordering.init()
    return ordering


def setup_database():
    """Create the ordering database schema."""
    from ordering.utils.db import setup_db

    domain = _domain()
    print("Creating ordering database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    """Drop the ordering database schema."""
    from ordering.utils.db import drop_db

    domain = _domain()
    print("Dropping ordering database schema...")
    drop_db(domain)
    print("Done.")


def flush_email_outbox(limit: int):
    """Re-send queued emails through the configured provider."""
    from ordering.notification.dispatcher import flush_outbox

    domain = _domain()
    with domain.domain_context():
        summary = flush_outbox(limit=limit)
    print(f"Attempted {summary['attempted']}: {summary['sent']} sent, {summary['failed']} failed.")
    return summary


def main():
    parser = argparse.ArgumentParser(description="Farmlink ordering management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    flush_parser = subparsers.add_parser("flush-outbox", help="Re-send pending and failed outbox emails")
    flush_parser.add_argument("--limit", type=int, default=50, help="Maximum emails to attempt (default: 50)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "flush-outbox":
        flush_email_outbox(args.limit)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
