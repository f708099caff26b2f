"""CLI query interface for the marketplace audit trail.

Provides an argparse-based command-line tool for querying audit entries
with filters by actor, entity, action, date range, and a shorthand
``--last`` duration.  Output formats: table (default) or JSON.

Usage::

    consulthive-audit --entity-type Offer --last 7d
    consulthive-audit --actor 3f2c... --format json
"""

from __future__ import annotations

import argparse
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from consulthive.audit.models import AuditAction
from consulthive.audit.store import query_audit_trail
from consulthive.store.database import Database


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for audit trail queries.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Query the marketplace audit trail")

    parser.add_argument("--actor", type=str, help="Filter by acting user id")
    parser.add_argument(
        "--entity-type",
        type=str,
        help="Filter by entity type (e.g. Request, Offer, Engagement)",
    )
    parser.add_argument("--entity-id", type=str, help="Filter by entity id")
    parser.add_argument(
        "--action",
        type=str,
        choices=[action.value for action in AuditAction],
        help="Filter by audit action",
    )
    parser.add_argument("--from-date", type=str, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to-date", type=str, help="End date (YYYY-MM-DD, inclusive)")
    parser.add_argument(
        "--last",
        type=str,
        help='Shorthand duration (e.g., "7d", "24h", "30d")',
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum results (default: 50)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default="data/consulthive.db",
        help="Path to the marketplace database (default: data/consulthive.db)",
    )

    return parser


_DURATION_UNITS = {"d": "days", "h": "hours"}


def parse_last_duration(last: str, *, now: datetime | None = None) -> str:
    """Turn ``Nd`` / ``Nh`` into the ISO timestamp that far before *now*.

    Raises:
        ValueError: If *last* is not a count followed by ``d`` or ``h``.
    """
    count, unit = last[:-1], last[-1:]
    if unit not in _DURATION_UNITS or not count.isdigit():
        msg = f"Unrecognized duration format: {last!r}. Use e.g. '7d' or '24h'."
        raise ValueError(msg)

    reference = now or datetime.now(tz=UTC)
    return (reference - timedelta(**{_DURATION_UNITS[unit]: int(count)})).isoformat()


def end_of_day(to_date: str) -> str:
    """Widen a bare ``YYYY-MM-DD`` upper bound to include that whole day."""
    if len(to_date) == 10:
        return f"{to_date}T23:59:59.999999+00:00"
    return to_date


# (header, row key, column width)
TABLE_COLUMNS: tuple[tuple[str, str, int], ...] = (
    ("Timestamp", "timestamp", 26),
    ("Action", "action", 28),
    ("Entity", "entity_type", 14),
    ("Entity ID", "entity_id", 32),
    ("Actor", "actor_id", 32),
)


def _cell(value: Any, width: int) -> str:
    text = "" if value is None else str(value)
    if len(text) > width:
        text = text[: width - 3] + "..."
    return text.ljust(width)


def format_table(results: list[dict[str, Any]]) -> str:
    """Render audit rows as a fixed-width table, truncating long cells."""
    if not results:
        return "No results found."

    header = "  ".join(_cell(title, width) for title, _, width in TABLE_COLUMNS)
    body = [
        "  ".join(_cell(row.get(key), width) for _, key, width in TABLE_COLUMNS)
        for row in results
    ]
    return "\n".join([header, "-" * len(header), *body])


def format_json(results: list[dict[str, Any]]) -> str:
    """Format audit results as a pretty-printed JSON string."""
    return json.dumps(results, indent=2)


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, query the audit trail, and print results."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from_date = args.from_date
    if args.last:
        try:
            from_date = parse_last_duration(args.last)
        except ValueError as exc:
            parser.error(str(exc))

    to_date = end_of_day(args.to_date) if args.to_date else None

    db_path = Path(args.db)
    if not db_path.exists():
        parser.error(f"Database not found: {db_path}")

    database = Database(db_path)
    with database.transaction(immediate=False) as uow:
        results = query_audit_trail(
            uow.conn,
            actor_id=args.actor,
            entity_type=args.entity_type,
            entity_id=args.entity_id,
            action=args.action,
            from_date=from_date,
            to_date=to_date,
            limit=args.limit,
        )

    output = format_json(results) if args.output_format == "json" else format_table(results)
    print(output)


if __name__ == "__main__":
    main()
