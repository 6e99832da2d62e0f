"""
Lifecycle commands: resolve, convert, unconvert, reset.
"""

import click

from ..exceptions import InvalidTransitionError, NotFoundError, WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..models import Outcome, WorkItem
from ..utils import output_json, output_text
from .common import events_option, fail, open_engine, pool_options, value_hint

logger = get_logger(__name__)


def _show(item: WorkItem, headline: str, text: bool) -> None:
    if text:
        output_text(headline)
        output_text(f"   Status: {item.status.value}")
        if item.outcome:
            output_text(f"   Outcome: {item.outcome.value}")
        if item.conversion:
            note = f" ({item.conversion_note})" if item.conversion_note else ""
            output_text(f"   Conversion: {item.conversion_at}{note}")
    else:
        output_json(item.to_dict())


@click.command("resolve")
@click.argument("item_id")
@click.argument("outcome", type=click.Choice([outcome.value for outcome in Outcome]))
@click.option("--worker", "worker_id", help="Require the item to be owned by this worker")
@events_option
@pool_options
@click.pass_context
def resolve_command(
    ctx: click.Context,
    item_id: str,
    outcome: str,
    worker_id: str | None,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Record the outcome of a call on a claimed item.

    Examples:

    \b
        workpool-tool pool resolve 4f1c... capable

    \b
        # Only succeed if w1 still owns the item
        workpool-tool pool resolve 4f1c... not_capable --worker w1
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            item = engine.resolve(item_id, outcome, worker_id)
        _show(item, f"✅ Item '{item.id}' resolved as {outcome}", text)

    except InvalidTransitionError as e:
        fail(ctx, text, str(e), "Only claimed items can be resolved; reset it first if needed", 1)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the item id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("convert")
@click.argument("item_id")
@click.option("--note", help="Free-text note stored with the conversion")
@events_option
@pool_options
@click.pass_context
def convert_command(
    ctx: click.Context,
    item_id: str,
    note: str | None,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Mark a capable item as converted.

    The first call stamps the conversion time; repeating it only replaces
    the note.

    Examples:

    \b
        workpool-tool pool convert 4f1c... --note "signed up for the trial"
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            item = engine.record_conversion(item_id, note)
        _show(item, f"✅ Conversion recorded for '{item.id}'", text)

    except InvalidTransitionError as e:
        fail(ctx, text, str(e), "Resolve the item as capable first", 1)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the item id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("unconvert")
@click.argument("item_id")
@events_option
@pool_options
@click.pass_context
def unconvert_command(
    ctx: click.Context,
    item_id: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Remove a recorded conversion. The outcome stays as it is.

    Examples:

    \b
        workpool-tool pool unconvert 4f1c...
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            item = engine.clear_conversion(item_id)
        _show(item, f"✅ Conversion cleared for '{item.id}'", text)

    except InvalidTransitionError as e:
        fail(ctx, text, str(e), "Retry the command", 1)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the item id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("reset")
@click.argument("item_id")
@events_option
@pool_options
@click.pass_context
def reset_command(
    ctx: click.Context,
    item_id: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Return an item to the shared pool from any state.

    Clears owner, outcome and conversion. Resetting an unclaimed item does
    nothing.

    Examples:

    \b
        workpool-tool pool reset 4f1c...
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            item = engine.reset(item_id)
        _show(item, f"✅ Item '{item.id}' is back in the pool", text)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the item id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)
