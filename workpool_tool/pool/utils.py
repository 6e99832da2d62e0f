"""
Utility functions for work pool operations.
"""

import json
from datetime import date, datetime, timezone
from typing import Any


def format_key(prefix: str, *parts: str) -> str:
    """
    Format a key with namespace prefix.

    Args:
        prefix: Namespace prefix (e.g., 'item', 'worker', 'pool')
        parts: Key components

    Returns:
        Formatted key with prefix (e.g., 'item#4f1c...')
    """
    return "#".join((prefix, *parts))


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """
    Convert an aware datetime to integer epoch milliseconds.

    Raises:
        ValueError: If the datetime is naive
    """
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime not allowed: {value.isoformat()}")
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: Any) -> datetime | None:
    """Convert stored epoch milliseconds (int or Decimal) to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def parse_datetime(value: str, tz: Any = timezone.utc) -> datetime:
    """
    Parse an ISO date or datetime given on the command line.

    Plain dates (2026-10-19) mean local midnight in the given time zone. Naive
    datetimes are interpreted in the same time zone.

    Raises:
        ValueError: If the value is not ISO formatted
    """
    value = value.strip()
    if len(value) == 10:
        day = date.fromisoformat(value)
        return datetime(day.year, day.month, day.day, tzinfo=tz)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def normalize_item_key(key: str) -> str:
    """Strip surrounding whitespace from a work item key."""
    return key.strip()


def output_json(data: dict[str, Any] | list[Any], quiet: bool = False) -> None:
    """
    Output JSON to stdout.

    Args:
        data: Data to output as JSON
        quiet: If True, suppress output
    """
    if not quiet:
        print(json.dumps(data))


def output_text(message: str, quiet: bool = False) -> None:
    """
    Output text to stdout.

    Args:
        message: Message to output
        quiet: If True, suppress output
    """
    if not quiet:
        print(message)


def error_json(error: str, solution: str, exit_code: int) -> str:
    """
    Format error as a JSON line.

    Args:
        error: Error message
        solution: Solution suggestion
        exit_code: Exit code

    Returns:
        Serialized error object
    """
    return json.dumps({"error": error, "solution": solution, "exit_code": exit_code})


def error_text(error: str, solution: str) -> str:
    """
    Format error as human-readable text.

    Args:
        error: Error message
        solution: Solution suggestion

    Returns:
        Formatted error message
    """
    return f"❌ Error: {error}\n\n💡 Solution: {solution}"


def validate_table_name(table_name: str) -> bool:
    """
    Validate DynamoDB table name.

    Args:
        table_name: Table name to validate

    Returns:
        True if valid

    Raises:
        ValueError: If table name is invalid
    """
    if not table_name:
        raise ValueError("Table name cannot be empty")
    if len(table_name) < 3 or len(table_name) > 255:
        raise ValueError("Table name must be between 3 and 255 characters")
    if not all(c.isalnum() or c in "-_." for c in table_name):
        raise ValueError(
            "Table name can only contain alphanumeric characters, hyphens, underscores, and periods"
        )
    return True
