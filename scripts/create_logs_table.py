#!/usr/bin/env python3
"""
Script: create_logs_table.py
Description: Create the DynamoDB delivery log table and, optionally, prune it.

Creates the table with its OrderIndex, EventTypeIndex and StatusIndex
global secondary indexes when it does not exist yet. Useful for local
development against DynamoDB Local and for first-time deployments.

Usage:
    python scripts/create_logs_table.py [--table-name woo-matomo-logs] [--prune]

Note:
    This script requires AWS credentials (or a DynamoDB Local endpoint
    configured through AWS_ENDPOINT_URL_DYNAMODB).
"""

import argparse
import asyncio
import sys
from typing import Optional

from woo_matomo.config.settings import get_settings
from woo_matomo.errors import StorageError
from woo_matomo.storage.audit_log import AuditLogStore
from woo_matomo.utils.logger import get_logger

logger = get_logger(__name__)


async def run(table_name: str, region: str, prune_days: Optional[int]) -> None:
    store = AuditLogStore(table_name=table_name, region_name=region)

    created = await store.ensure_table()
    print(f"Table '{table_name}' {'created' if created else 'already exists'}")

    if prune_days is not None:
        deleted = await store.prune(prune_days)
        print(f"Pruned {deleted} entries older than {prune_days} days")


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Create the Matomo delivery log table"
    )
    parser.add_argument(
        "--table-name",
        default=settings.logs_table_name,
        help=f"DynamoDB table name (default: {settings.logs_table_name})"
    )
    parser.add_argument(
        "--region",
        default=settings.aws_region,
        help=f"AWS region (default: {settings.aws_region})"
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        help="Also delete entries older than LOG_RETENTION_DAYS"
    )

    args = parser.parse_args()
    prune_days = settings.log_retention_days if args.prune else None

    try:
        asyncio.run(run(args.table_name, args.region, prune_days))
    except StorageError as e:
        logger.error("Table setup failed", table_name=args.table_name, error=e.message)
        print(f"ERROR: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
