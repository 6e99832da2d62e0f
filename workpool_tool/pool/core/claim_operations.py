"""
Claim operations: self-service top-up and administrative distribution.

Every claim is one conditional update that moves a single item from
unclaimed to claimed only if it is still unclaimed when the write commits.
Candidate lists read beforehand are hints; losing the conditional update to
a concurrent caller just means trying the next candidate.

Each claim also bumps the worker's counter for the local day in the same
atomic write. Self-service claims carry the daily quota as the counter's
limit, so concurrent top-ups for one worker can never claim past the quota.
"""

from collections.abc import Iterable
from datetime import datetime

from ..exceptions import ConditionFailedError, QuotaExceededError
from ..logging_config import get_logger
from ..models import Campaign, ChangeKind, DistributionResult, ItemStatus, WorkItem, Worker
from ..windows import quota_day
from .context import EngineContext
from .store import QuotaCharge
from .worker_operations import get_worker

logger = get_logger(__name__)


def items_claimed_today(ctx: EngineContext, worker_id: str) -> int:
    """
    Number of items charged to the worker for the current calendar day.

    The day is the configured-time-zone day containing the current time.
    Read from the worker's day counter, which every claim increments and
    every reset of a claim decrements.
    """
    return ctx.store.quota_used(worker_id, quota_day(ctx.now(), ctx.config.tz))


def remaining_quota(ctx: EngineContext, worker_id: str, worker: Worker | None = None) -> int:
    """
    Items the worker may still self-claim today. Never negative.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    if worker is None:
        worker = get_worker(ctx, worker_id)
    return max(0, worker.daily_quota - items_claimed_today(ctx, worker.id))


def _check_quota(ctx: EngineContext, worker: Worker) -> int:
    remaining = remaining_quota(ctx, worker.id, worker)
    if remaining == 0:
        raise QuotaExceededError(worker.id, worker.daily_quota)
    return remaining


def _claim_one(
    ctx: EngineContext,
    candidate: WorkItem,
    worker_id: str,
    now: datetime,
    limit: int | None,
) -> WorkItem | None:
    claimed_at = max(now, candidate.created_at)
    try:
        item = ctx.store.update_item(
            candidate.id,
            {
                "status": ItemStatus.CLAIMED,
                "owner_id": worker_id,
                "claimed_at": claimed_at,
            },
            expected={"status": ItemStatus.UNCLAIMED},
            charge=QuotaCharge(worker_id, quota_day(claimed_at, ctx.config.tz), limit=limit),
        )
    except ConditionFailedError:
        logger.debug(f"Item '{candidate.id}' was claimed by another caller")
        return None

    ctx.emit(ChangeKind.ITEM_CLAIMED, item.id, item.version, worker_id, item.to_dict())
    return item


def _claim_batch(
    ctx: EngineContext,
    worker_id: str,
    wanted: int,
    campaign: Campaign | None,
    tried: set[str],
    limit: int | None = None,
) -> list[WorkItem]:
    """
    Claim up to `wanted` items for one worker.

    `tried` collects every candidate already attempted so a candidate is
    never attempted twice, which also guarantees the loop ends once the pool
    stops yielding new candidates. With a `limit`, the batch stops as soon as
    the worker's day counter reaches it.
    """
    claimed: list[WorkItem] = []
    now = ctx.now()

    while len(claimed) < wanted:
        needed = wanted - len(claimed)
        candidates = ctx.store.find_unclaimed(
            needed * ctx.config.candidate_overfetch, campaign, exclude=tried
        )
        if not candidates:
            break

        for candidate in candidates:
            try:
                item = _claim_one(ctx, candidate, worker_id, now, limit)
            except QuotaExceededError:
                logger.debug(f"Worker '{worker_id}' reached the daily quota mid-batch")
                return claimed
            tried.add(candidate.id)
            if item is not None:
                claimed.append(item)
                if len(claimed) >= wanted:
                    break

    return claimed


def claim_up_to(
    ctx: EngineContext,
    worker_id: str,
    count: int,
    campaign: Campaign | None = None,
    strict: bool = False,
) -> list[WorkItem]:
    """
    Self-service top-up: claim up to `count` items within the worker's quota.

    The request is capped by the worker's remaining quota for today, and
    every claim is checked against the quota again as it commits. Inactive
    workers and non-standard roles receive nothing. Quota exhaustion is not a
    fault for pollers: the result is simply empty.

    Args:
        ctx: Engine context
        worker_id: Worker claiming items
        count: Desired number of items
        campaign: Only claim items of this campaign (default: any)
        strict: Raise QuotaExceededError instead of returning [] when the
            quota is used up

    Returns:
        Newly claimed items (0..count)

    Raises:
        ValueError: If count is negative
        WorkerNotFoundError: If the worker does not exist
        QuotaExceededError: Only with strict=True
    """
    if count < 0:
        raise ValueError("Claim count cannot be negative")

    worker = get_worker(ctx, worker_id)
    if count == 0:
        return []
    if not worker.auto_assignable:
        logger.debug(
            f"Worker '{worker_id}' is not eligible for self-service claims "
            f"(active={worker.active}, role={worker.role.value})"
        )
        return []

    try:
        remaining = _check_quota(ctx, worker)
    except QuotaExceededError:
        if strict:
            raise
        logger.debug(f"Worker '{worker_id}' has no quota left today")
        return []

    wanted = min(count, remaining)
    claimed = _claim_batch(ctx, worker_id, wanted, campaign, set(), limit=worker.daily_quota)
    if strict and not claimed and remaining_quota(ctx, worker_id, worker) == 0:
        raise QuotaExceededError(worker.id, worker.daily_quota)
    logger.info(f"Worker '{worker_id}' claimed {len(claimed)} of {wanted} requested items")
    return claimed


def distribute(
    ctx: EngineContext,
    worker_ids: Iterable[str],
    per_worker_count: int,
    campaign: Campaign | None = None,
) -> DistributionResult:
    """
    Administrative bulk mode: claim `per_worker_count` items for each worker.

    Personal quotas and roles are ignored, though every claim still counts
    toward the worker's day counter. Workers are served in the given
    order, so earlier workers win when supply runs short; items are drawn
    without replacement across the whole call. Claims already made stay made
    if the pool runs dry or the caller abandons the call.

    Args:
        ctx: Engine context
        worker_ids: Workers to serve, in priority order (duplicates ignored)
        per_worker_count: Items requested for each worker
        campaign: Only distribute items of this campaign (default: any)

    Returns:
        DistributionResult with the items actually claimed per worker

    Raises:
        ValueError: If per_worker_count is negative
        WorkerNotFoundError: If any worker does not exist (before any claim)
    """
    if per_worker_count < 0:
        raise ValueError("Per-worker count cannot be negative")

    workers = [get_worker(ctx, worker_id) for worker_id in dict.fromkeys(worker_ids)]
    result = DistributionResult(requested_per_worker=per_worker_count)
    tried: set[str] = set()

    for worker in workers:
        if not worker.active:
            logger.info(f"Skipping inactive worker '{worker.id}'")
            result.allocations[worker.id] = []
            result.skipped.append(worker.id)
            continue
        if per_worker_count == 0:
            result.allocations[worker.id] = []
            continue
        result.allocations[worker.id] = _claim_batch(
            ctx, worker.id, per_worker_count, campaign, tried
        )

    logger.info(
        f"Distributed {result.total} items across {len(workers)} workers "
        f"({per_worker_count} requested each)"
    )
    return result
