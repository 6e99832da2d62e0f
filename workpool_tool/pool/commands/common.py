"""
Shared plumbing for pool commands: common options, engine setup, error output.
"""

import json
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, NoReturn

import click

from ..config import EngineConfig
from ..constants import DEFAULT_TABLE_NAME, DEFAULT_TIMEZONE
from ..engine import WorkPoolEngine
from ..models import ChangeEvent
from ..utils import error_json, error_text, parse_datetime
from ..windows import TimeWindow

F = Callable[..., Any]


def pool_options(func: F) -> F:
    """Attach the options every engine-backed command accepts."""
    options = [
        click.option(
            "--table",
            envvar="WORKPOOL_TABLE",
            default=DEFAULT_TABLE_NAME,
            help="DynamoDB table name",
        ),
        click.option("--region", envvar="AWS_REGION", help="AWS region"),
        click.option("--profile", envvar="AWS_PROFILE", help="AWS profile"),
        click.option(
            "--timezone",
            envvar="WORKPOOL_TIMEZONE",
            default=DEFAULT_TIMEZONE,
            help="Time zone for calendar days (quota and report buckets)",
        ),
        click.option("--text", is_flag=True, help="Output as human-readable text"),
        click.option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v INFO, -vv DEBUG, -vvv TRACE)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def events_option(func: F) -> F:
    """Attach --events to commands that change state."""
    return click.option(
        "--events", is_flag=True, help="Print change events as JSON lines on stderr"
    )(func)


def build_engine(config: EngineConfig) -> WorkPoolEngine:
    return WorkPoolEngine.from_config(config)


def open_engine(
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    events: bool = False,
) -> WorkPoolEngine:
    """
    Build and open the engine for one command invocation.

    Settings not exposed as options (default quota) come from the environment.

    Raises:
        ValueError: If the table name or time zone is invalid
    """
    config = replace(
        EngineConfig.from_env(),
        table_name=table,
        region=region,
        profile=profile,
        timezone=timezone,
    )
    engine = build_engine(config)
    if events:
        engine.subscribe(print_event)
    return engine.open()


def value_hint(*arguments: str) -> str:
    """
    Solution text for a ValueError from an engine-backed command.

    The error may come from the command's own arguments or from the engine
    settings checked by open_engine, so the hint names both.
    """
    return "Check " + ", ".join([*arguments, "--table", "--timezone", "WORKPOOL_DEFAULT_QUOTA"])


def print_event(event: ChangeEvent) -> None:
    click.echo(json.dumps(event.to_dict()), err=True)


def fail(ctx: click.Context, text: bool, error: str, solution: str, exit_code: int) -> NoReturn:
    """Print an error in the selected format and exit."""
    if text:
        click.echo(error_text(error, solution), err=True)
    else:
        click.echo(error_json(error, solution, exit_code), err=True)
    ctx.exit(exit_code)


def resolve_window(
    start: str | None, end: str | None, days: int, config_tz: Any, now: datetime
) -> TimeWindow:
    """
    Build a report window from --start/--end or a trailing number of days.

    Plain dates are local midnights in the configured time zone. Without
    --start the window covers the last `days` calendar days including today.

    Raises:
        ValueError: If a value is malformed or end is before start
    """
    if days < 1:
        raise ValueError("--days must be at least 1")

    if end is not None:
        end_at = parse_datetime(end, config_tz)
    else:
        today = now.astimezone(config_tz).date()
        end_at = parse_datetime((today + timedelta(days=1)).isoformat(), config_tz)

    if start is not None:
        start_at = parse_datetime(start, config_tz)
    else:
        end_day = (end_at.astimezone(config_tz) - timedelta(microseconds=1)).date()
        start_at = parse_datetime((end_day - timedelta(days=days - 1)).isoformat(), config_tz)

    return TimeWindow(start_at, end_at)
