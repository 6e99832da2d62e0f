"""
Work item intake and lookup commands.
"""

from typing import TextIO

import click

from ..constants import DEFAULT_WORKER_ITEMS_LIMIT
from ..exceptions import NotFoundError, WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..models import Campaign, ItemStatus
from ..utils import output_json, output_text
from .common import events_option, fail, open_engine, pool_options, value_hint

logger = get_logger(__name__)

CAMPAIGN_CHOICE = click.Choice([campaign.value for campaign in Campaign])


@click.command("add-items")
@click.argument("keys", nargs=-1)
@click.option(
    "--campaign",
    type=CAMPAIGN_CHOICE,
    required=True,
    help="Campaign the items belong to",
)
@click.option(
    "--file",
    "keys_file",
    type=click.File("r"),
    help="Read keys from a file, one per line ('-' for stdin)",
)
@events_option
@pool_options
@click.pass_context
def add_items_command(
    ctx: click.Context,
    keys: tuple[str, ...],
    campaign: str,
    keys_file: TextIO | None,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Add phone numbers to the pool as unclaimed work items.

    Keys already present in the campaign, or repeated in the input, are
    reported as duplicates and skipped.

    Examples:

    \b
        # Add two numbers
        workpool-tool pool add-items --campaign oasis_outfit +15550100 +15550101

    \b
        # Add numbers from a file
        workpool-tool pool add-items --campaign zizii_island --file numbers.txt

    \b
    Output Format:
        Returns JSON:
        {"created": 2, "duplicates": [], "item_ids": ["...", "..."]}
    """
    setup_logging(verbose)

    all_keys = list(keys)
    if keys_file is not None:
        all_keys.extend(keys_file.read().splitlines())

    try:
        logger.info(f"Adding {len(all_keys)} keys to campaign '{campaign}'")
        with open_engine(table, region, profile, timezone, events) as engine:
            result = engine.add_items(all_keys, Campaign(campaign))

        if text:
            output_text(f"✅ Added {len(result.created)} items to '{campaign}'")
            if result.duplicates:
                output_text(f"   Duplicates skipped: {len(result.duplicates)}")
                for key in result.duplicates:
                    output_text(f"   - {key}")
        else:
            output_json(result.to_dict())

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("item-get")
@click.argument("item_id")
@pool_options
@click.pass_context
def item_get_command(
    ctx: click.Context,
    item_id: str,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Show a single work item.

    Examples:

    \b
        workpool-tool pool item-get 4f1c2b9e-0000-4000-8000-000000000001

    \b
    Output Format:
        Returns the item as JSON:
        {"id": "...", "key": "+15550100", "campaign": "oasis_outfit",
         "status": "claimed", "owner_id": "w1", ...}
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone) as engine:
            item = engine.get_item(item_id)

        if text:
            output_text(f"{item.key} [{item.campaign.value}]")
            output_text(f"   Status: {item.status.value}")
            if item.owner_id:
                output_text(f"   Owner: {item.owner_id}")
            if item.outcome:
                output_text(f"   Outcome: {item.outcome.value}")
            if item.conversion:
                output_text(f"   Converted: {item.conversion_at}")
        else:
            output_json(item.to_dict())

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the item id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-items")
@click.argument("worker_id")
@click.option(
    "--status",
    type=click.Choice([status.value for status in ItemStatus if status is not ItemStatus.UNCLAIMED]),
    help="Only items in this status",
)
@click.option("--today", is_flag=True, help="Only items claimed today")
@click.option(
    "--limit",
    type=int,
    default=DEFAULT_WORKER_ITEMS_LIMIT,
    help=f"Maximum items to return (default: {DEFAULT_WORKER_ITEMS_LIMIT})",
)
@pool_options
@click.pass_context
def worker_items_command(
    ctx: click.Context,
    worker_id: str,
    status: str | None,
    today: bool,
    limit: int,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """List the items a worker currently owns, oldest claim first.

    Examples:

    \b
        # Everything a worker still has to call
        workpool-tool pool worker-items w1 --status claimed

    \b
        # What a worker picked up today
        workpool-tool pool worker-items w1 --today --text
    """
    setup_logging(verbose)

    try:
        if limit < 1:
            raise ValueError("--limit must be at least 1")
        with open_engine(table, region, profile, timezone) as engine:
            items = engine.list_worker_items(
                worker_id,
                ItemStatus(status) if status else None,
                claimed_today=today,
                limit=limit,
            )

        if text:
            if not items:
                output_text(f"No items for worker '{worker_id}'")
            for item in items:
                outcome = f" ({item.outcome.value})" if item.outcome else ""
                output_text(f"{item.id}  {item.key}  {item.status.value}{outcome}")
        else:
            output_json([item.to_dict() for item in items])

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)
