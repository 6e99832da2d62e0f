"""
Aggregation reporting over the work pool. Read-only.

Each metric is counted against its own timestamp: totals by creation time,
claims by claim time, resolutions and outcomes by resolution time,
conversions by conversion time. Windows are half-open, so summaries over
adjacent windows add up exactly to the summary over their union.
"""

from bisect import bisect_right
from collections.abc import Iterator
from datetime import datetime

from ..models import (
    Bucket,
    Campaign,
    ItemStatus,
    LeaderboardRow,
    Outcome,
    PoolOverview,
    ReportFilter,
    Summary,
    WorkItem,
    WorkerRole,
)
from ..windows import Granularity, TimeWindow, split_window
from .context import EngineContext
from .worker_operations import list_workers


def _metric_times(item: WorkItem) -> Iterator[tuple[datetime, str]]:
    """(timestamp, metric) pairs an item contributes to."""
    yield item.created_at, "total"
    if item.claimed_at is not None:
        yield item.claimed_at, "claimed"
    if item.resolved_at is not None:
        yield item.resolved_at, "resolved"
        if item.outcome is Outcome.CAPABLE:
            yield item.resolved_at, "capable"
        elif item.outcome is Outcome.NOT_CAPABLE:
            yield item.resolved_at, "not_capable"
    if item.conversion and item.conversion_at is not None:
        yield item.conversion_at, "conversions"


def _increment(summary: Summary, metric: str) -> None:
    setattr(summary, metric, getattr(summary, metric) + 1)


def _scan(ctx: EngineContext, report_filter: ReportFilter) -> Iterator[WorkItem]:
    for item in ctx.store.iter_items(
        campaign=report_filter.campaign, owner_id=report_filter.owner_id
    ):
        if report_filter.matches(item):
            yield item


def summarize(
    ctx: EngineContext, window: TimeWindow, report_filter: ReportFilter | None = None
) -> Summary:
    """
    Count items, claims, resolutions and conversions inside a window.

    Args:
        ctx: Engine context
        window: Half-open [start, end) window
        report_filter: Optional campaign / owner / outcome restriction

    Returns:
        Summary with additive counters and derived completion rate
    """
    summary = Summary()
    for item in _scan(ctx, report_filter or ReportFilter()):
        for moment, metric in _metric_times(item):
            if window.contains(moment):
                _increment(summary, metric)
    return summary


def bucket_by(
    ctx: EngineContext,
    window: TimeWindow,
    granularity: Granularity,
    report_filter: ReportFilter | None = None,
) -> list[Bucket]:
    """
    Split a window into calendar buckets and summarize each one.

    Buckets follow the configured time zone's calendar and partition the
    window exactly. Items are read once and assigned to buckets in memory,
    which gives the same counts as calling summarize() per bucket.

    Args:
        ctx: Engine context
        window: Half-open window to split
        granularity: Day, week (ISO, Monday start) or month
        report_filter: Optional campaign / owner / outcome restriction

    Returns:
        Buckets in chronological order
    """
    spans = split_window(window, granularity, ctx.config.tz)
    buckets = [Bucket(label, span, Summary()) for label, span in spans]
    starts = [span.start for _, span in spans]

    for item in _scan(ctx, report_filter or ReportFilter()):
        for moment, metric in _metric_times(item):
            if not window.contains(moment):
                continue
            index = bisect_right(starts, moment) - 1
            _increment(buckets[index].summary, metric)

    return buckets


def worker_leaderboard(
    ctx: EngineContext,
    window: TimeWindow,
    campaign: Campaign | None = None,
    include_inactive: bool = True,
) -> list[LeaderboardRow]:
    """
    Per-worker summaries for standard workers, best performers first.

    Ranked by resolved count, then completion rate, then name. Unlike
    summarize(), `total` here is every item the worker currently owns,
    regardless of the window.
    """
    workers = list_workers(ctx, active_only=not include_inactive, role=WorkerRole.STANDARD)
    summaries = {worker.id: Summary() for worker in workers}

    for item in ctx.store.iter_items(campaign=campaign):
        summary = summaries.get(item.owner_id or "")
        if summary is None:
            continue
        summary.total += 1
        for moment, metric in _metric_times(item):
            if metric != "total" and window.contains(moment):
                _increment(summary, metric)

    rows = [
        LeaderboardRow(worker.id, worker.display_name, worker.active, summaries[worker.id])
        for worker in workers
    ]
    rows.sort(key=lambda row: (-row.summary.resolved, -row.summary.completion_rate, row.display_name))
    return rows


def pool_overview(ctx: EngineContext, campaign: Campaign | None = None) -> PoolOverview:
    """Point-in-time item counts by status, overall and per campaign."""
    overview = PoolOverview()
    for item in ctx.store.iter_items(campaign=campaign):
        overview.total += 1
        if item.status is ItemStatus.UNCLAIMED:
            overview.unclaimed += 1
        elif item.status is ItemStatus.CLAIMED:
            overview.claimed += 1
        else:
            overview.resolved += 1
        name = item.campaign.value
        overview.by_campaign[name] = overview.by_campaign.get(name, 0) + 1
    return overview
