"""
Reporting commands. Read-only.
"""

from collections.abc import Callable
from typing import Any

import click

from ..exceptions import WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..models import Campaign, Outcome, ReportFilter, Summary
from ..utils import output_json, output_text
from ..windows import Granularity
from .common import fail, open_engine, pool_options, resolve_window, value_hint
from .item_commands import CAMPAIGN_CHOICE

logger = get_logger(__name__)

WINDOW_ARGUMENTS = "--start and --end (YYYY-MM-DD or ISO, start before end)"


def window_options(default_days: int) -> Callable[[Any], Any]:
    """--start / --end / --days, defaulting to the last `default_days` days."""

    def decorate(func: Any) -> Any:
        func = click.option(
            "--days",
            type=int,
            default=default_days,
            help=f"Calendar days ending today, when --start is omitted (default: {default_days})",
        )(func)
        func = click.option(
            "--end", help="Window end, exclusive (YYYY-MM-DD or ISO datetime)"
        )(func)
        func = click.option(
            "--start", help="Window start, inclusive (YYYY-MM-DD or ISO datetime)"
        )(func)
        return func

    return decorate


def _summary_lines(summary: Summary, indent: str = "   ") -> list[str]:
    return [
        f"{indent}Added: {summary.total}",
        f"{indent}Claimed: {summary.claimed}",
        f"{indent}Resolved: {summary.resolved} "
        f"(capable {summary.capable}, not capable {summary.not_capable})",
        f"{indent}Conversions: {summary.conversions}",
        f"{indent}Completion rate: {summary.completion_rate:.1%}",
    ]


@click.command("summarize")
@window_options(default_days=1)
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only items of this campaign")
@click.option("--owner", help="Only items owned by this worker")
@click.option(
    "--outcome",
    type=click.Choice([outcome.value for outcome in Outcome]),
    help="Only items with this outcome",
)
@pool_options
@click.pass_context
def summarize_command(
    ctx: click.Context,
    start: str | None,
    end: str | None,
    days: int,
    campaign: str | None,
    owner: str | None,
    outcome: str | None,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Count additions, claims, resolutions and conversions in a time window.

    Each count uses its own timestamp: items by creation time, claims by
    claim time, resolutions by resolution time, conversions by conversion
    time. The window includes --start and excludes --end.

    Examples:

    \b
        # Today
        workpool-tool pool summarize

    \b
        # One week, one campaign
        workpool-tool pool summarize --start 2026-10-12 --end 2026-10-19 \\
            --campaign oasis_outfit

    \b
    Output Format:
        Returns JSON:
        {"start": "...", "end": "...", "total": 120, "claimed": 80,
         "resolved": 60, "capable": 20, "not_capable": 40,
         "conversions": 5, "completion_rate": 0.75}
    """
    setup_logging(verbose)

    try:
        report_filter = ReportFilter(
            campaign=Campaign(campaign) if campaign else None,
            owner_id=owner,
            outcome=Outcome(outcome) if outcome else None,
        )
        with open_engine(table, region, profile, timezone) as engine:
            window = resolve_window(
                start, end, days, engine.context.config.tz, engine.context.now()
            )
            logger.info(f"Summarizing {window.start.isoformat()} .. {window.end.isoformat()}")
            summary = engine.summarize(window, report_filter)

        if text:
            output_text(f"📊 {window.start.isoformat()} → {window.end.isoformat()}")
            for line in _summary_lines(summary):
                output_text(line)
        else:
            output_json({**window.to_dict(), **summary.to_dict()})

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(WINDOW_ARGUMENTS), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("buckets")
@window_options(default_days=7)
@click.option(
    "--by",
    "granularity",
    type=click.Choice([granularity.value for granularity in Granularity]),
    default=Granularity.DAY.value,
    help="Bucket size (default: day)",
)
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only items of this campaign")
@click.option("--owner", help="Only items owned by this worker")
@pool_options
@click.pass_context
def buckets_command(
    ctx: click.Context,
    start: str | None,
    end: str | None,
    days: int,
    granularity: str,
    campaign: str | None,
    owner: str | None,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Summaries per calendar day, ISO week or month.

    Bucket boundaries are midnights in --timezone. The first and last
    buckets are clipped to the window, and the buckets add up to the
    summary of the whole window.

    Examples:

    \b
        # Last 7 days, one row per day
        workpool-tool pool buckets --text

    \b
        # Weekly trend for October in Amsterdam time
        workpool-tool pool buckets --start 2026-10-01 --end 2026-11-01 \\
            --by week --timezone Europe/Amsterdam

    \b
    Output Format:
        Returns JSON list:
        [{"label": "2026-10-19", "start": "...", "end": "...", "total": 3, ...}]
    """
    setup_logging(verbose)

    try:
        report_filter = ReportFilter(
            campaign=Campaign(campaign) if campaign else None, owner_id=owner
        )
        with open_engine(table, region, profile, timezone) as engine:
            window = resolve_window(
                start, end, days, engine.context.config.tz, engine.context.now()
            )
            buckets = engine.bucket_by(window, Granularity(granularity), report_filter)

        if text:
            for bucket in buckets:
                summary = bucket.summary
                output_text(
                    f"{bucket.label}  added={summary.total}  claimed={summary.claimed}  "
                    f"resolved={summary.resolved}  capable={summary.capable}  "
                    f"conversions={summary.conversions}  "
                    f"rate={summary.completion_rate:.1%}"
                )
        else:
            output_json([bucket.to_dict() for bucket in buckets])

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(WINDOW_ARGUMENTS), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("leaderboard")
@window_options(default_days=1)
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only items of this campaign")
@click.option("--active-only", is_flag=True, help="Hide deactivated workers")
@pool_options
@click.pass_context
def leaderboard_command(
    ctx: click.Context,
    start: str | None,
    end: str | None,
    days: int,
    campaign: str | None,
    active_only: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Rank standard workers by resolutions in a time window.

    `total` is every item a worker currently owns; the other counts use the
    window.

    Examples:

    \b
        workpool-tool pool leaderboard --days 7 --text
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone) as engine:
            window = resolve_window(
                start, end, days, engine.context.config.tz, engine.context.now()
            )
            rows = engine.worker_leaderboard(
                window, Campaign(campaign) if campaign else None, include_inactive=not active_only
            )

        if text:
            if not rows:
                output_text("No standard workers found")
            for rank, row in enumerate(rows, start=1):
                summary = row.summary
                flag = "" if row.active else " (inactive)"
                output_text(
                    f"{rank:>3}. {row.display_name}{flag}  resolved={summary.resolved}  "
                    f"capable={summary.capable}  conversions={summary.conversions}  "
                    f"rate={summary.completion_rate:.1%}  owned={summary.total}"
                )
        else:
            output_json({**window.to_dict(), "rows": [row.to_dict() for row in rows]})

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(WINDOW_ARGUMENTS), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("overview")
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only items of this campaign")
@pool_options
@click.pass_context
def overview_command(
    ctx: click.Context,
    campaign: str | None,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Current item counts by status, overall and per campaign.

    Examples:

    \b
        workpool-tool pool overview --text
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone) as engine:
            overview = engine.pool_overview(Campaign(campaign) if campaign else None)

        if text:
            output_text(f"📦 {overview.total} items")
            output_text(f"   Unclaimed: {overview.unclaimed}")
            output_text(f"   Claimed: {overview.claimed}")
            output_text(f"   Resolved: {overview.resolved}")
            for name, count in sorted(overview.by_campaign.items()):
                output_text(f"   {name}: {count}")
        else:
            output_json(overview.to_dict())

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)
