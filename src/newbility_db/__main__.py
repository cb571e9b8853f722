"""Command-line entry point: run one SQL statement against a database URL.

Usage:
    newbility-db "SELECT * FROM users WHERE id = :id" --param id=7
    newbility-db --url postgresql://app@db/app "SELECT * FROM t" --limit 10
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from newbility_db.config import get_database_url, get_log_level
from newbility_db.db.connection import create_provider_from_url
from newbility_db.errors import DatabaseError


def _parse_param(raw: str) -> tuple[str, Any]:
    """Parse NAME=VALUE; VALUE is read as JSON when possible, else kept as text."""
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {raw!r}")
    try:
        return name, json.loads(value)
    except json.JSONDecodeError:
        return name, value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="newbility-db", description="Run a SQL statement with :named parameters"
    )
    parser.add_argument("sql", help="SQL text, using :name parameters")
    parser.add_argument(
        "--url", default=None, help="Database URL (default: DB_DATABASE_URL env)"
    )
    parser.add_argument(
        "-p",
        "--param",
        action="append",
        default=[],
        type=_parse_param,
        metavar="NAME=VALUE",
        help="Bind a named parameter (repeatable)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Page size")
    parser.add_argument("--offset", type=int, default=None, help="Rows to skip")
    parser.add_argument("--one", action="store_true", help="Return only the first row")
    return parser


async def run(args: argparse.Namespace) -> int:
    """Execute the statement described by ``args`` and print rows as JSON lines."""
    params: dict[str, Any] = dict(args.param)
    provider = await create_provider_from_url(args.url or get_database_url())
    async with provider:
        if args.one:
            row = await provider.query_one_named(args.sql, params)
            rows = [row] if row is not None else []
            row_count = len(rows)
        elif args.limit is not None or args.offset is not None:
            params.update(limit=args.limit, offset=args.offset)
            result = await provider.query_page(args.sql, params)
            rows, row_count = result.rows, result.row_count
        else:
            result = await provider.execute_named(args.sql, params)
            rows, row_count = result.rows, result.row_count

    for row in rows:
        print(json.dumps(row, default=str))
    print(f"row_count: {row_count}", file=sys.stderr)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the newbility-db command."""
    logging.basicConfig(
        level=getattr(logging, get_log_level().upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except DatabaseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
