"""
Claim commands: self-service top-up and administrative distribution.
"""

import click

from ..constants import DEFAULT_DISTRIBUTE_COUNT
from ..exceptions import NotFoundError, QuotaExceededError, WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..models import Campaign
from ..utils import output_json, output_text
from .common import events_option, fail, open_engine, pool_options, value_hint
from .item_commands import CAMPAIGN_CHOICE

logger = get_logger(__name__)


@click.command("claim")
@click.argument("worker_id")
@click.argument("count", type=int)
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only claim items of this campaign")
@click.option(
    "--strict",
    is_flag=True,
    help="Fail with exit code 1 when the daily quota is used up",
)
@events_option
@pool_options
@click.pass_context
def claim_command(
    ctx: click.Context,
    worker_id: str,
    count: int,
    campaign: str | None,
    strict: bool,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Claim up to COUNT unclaimed items for a worker, within its daily quota.

    The request is capped by what is left of the worker's quota today.
    Inactive workers and elevated/superuser roles receive nothing. Each item
    is claimed with a conditional write, so concurrent callers never receive
    the same item.

    Examples:

    \b
        # Top up a worker's list
        workpool-tool pool claim w1 5

    \b
        # Only numbers from one campaign, fail when quota is exhausted
        workpool-tool pool claim w1 5 --campaign oasis_outfit --strict

    \b
    Output Format:
        Returns JSON:
        {"worker_id": "w1", "requested": 5, "claimed": 5,
         "remaining_quota": 15, "items": [{...}, ...]}
    """
    setup_logging(verbose)

    try:
        logger.info(f"Claiming up to {count} items for '{worker_id}'")
        with open_engine(table, region, profile, timezone, events) as engine:
            items = engine.claim_up_to(
                worker_id, count, Campaign(campaign) if campaign else None, strict=strict
            )
            remaining = engine.remaining_quota(worker_id)

        if text:
            output_text(f"✅ Claimed {len(items)} of {count} items for '{worker_id}'")
            for item in items:
                output_text(f"   {item.key}  ({item.id})")
            output_text(f"   Remaining quota today: {remaining}")
        else:
            output_json(
                {
                    "worker_id": worker_id,
                    "requested": count,
                    "claimed": len(items),
                    "remaining_quota": remaining,
                    "items": [item.to_dict() for item in items],
                }
            )

    except QuotaExceededError as e:
        fail(ctx, text, str(e), "Wait for tomorrow or raise the quota with worker-quota", 1)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Register the worker with worker-ensure first", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint("COUNT (zero or more)"), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("distribute")
@click.argument("worker_ids", nargs=-1, required=True)
@click.option(
    "--count",
    type=int,
    default=DEFAULT_DISTRIBUTE_COUNT,
    help=f"Items per worker (default: {DEFAULT_DISTRIBUTE_COUNT})",
)
@click.option("--campaign", type=CAMPAIGN_CHOICE, help="Only distribute items of this campaign")
@events_option
@pool_options
@click.pass_context
def distribute_command(
    ctx: click.Context,
    worker_ids: tuple[str, ...],
    count: int,
    campaign: str | None,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Assign a fixed number of items to each listed worker (admin override).

    Personal quotas and roles are ignored. Workers are served in the order
    given, so when the pool runs short the last workers receive fewer items.
    Inactive workers are skipped. Claims already made are kept if the pool
    runs dry.

    Examples:

    \b
        # Give three moderators 100 numbers each
        workpool-tool pool distribute w1 w2 w3 --count 100

    \b
    Output Format:
        Returns JSON:
        {"requested_per_worker": 100, "counts": {"w1": 100, ...},
         "total": 300, "exhausted": false, "skipped": [], "items": {...}}
    """
    setup_logging(verbose)

    try:
        logger.info(f"Distributing {count} items each to {len(worker_ids)} workers")
        with open_engine(table, region, profile, timezone, events) as engine:
            result = engine.distribute(
                worker_ids, count, Campaign(campaign) if campaign else None
            )

        if text:
            output_text(f"✅ Distributed {result.total} items")
            for worker_id, claimed in result.counts.items():
                note = " (inactive, skipped)" if worker_id in result.skipped else ""
                output_text(f"   {worker_id}: {claimed}/{count}{note}")
            if result.exhausted:
                output_text("⚠️  Pool ran dry before every worker was served")
        else:
            output_json(result.to_dict())

    except NotFoundError as e:
        fail(ctx, text, str(e), "Register every worker with worker-ensure first", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint("--count (zero or more)"), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)
