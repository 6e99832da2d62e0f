"""
Worker registry commands.
"""

import click

from ..constants import DEFAULT_PARTITION
from ..exceptions import NotFoundError, WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..models import Worker, WorkerRole
from ..utils import output_json, output_text
from .common import events_option, fail, open_engine, pool_options, value_hint

logger = get_logger(__name__)

ROLE_CHOICE = click.Choice([role.value for role in WorkerRole])


def _show(worker: Worker, headline: str, text: bool) -> None:
    if text:
        output_text(headline)
        output_text(f"   Name: {worker.display_name} <{worker.contact}>")
        output_text(f"   Role: {worker.role.value}")
        output_text(f"   Active: {'yes' if worker.active else 'no'}")
        output_text(f"   Daily quota: {worker.daily_quota}")
        output_text(f"   Partition: {worker.partition}")
    else:
        output_json(worker.to_dict())


@click.command("worker-ensure")
@click.argument("worker_id")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option("--contact", required=True, help="Contact e-mail")
@click.option(
    "--partition",
    default=DEFAULT_PARTITION,
    help=f"Dashboard partition (default: {DEFAULT_PARTITION})",
)
@events_option
@pool_options
@click.pass_context
def worker_ensure_command(
    ctx: click.Context,
    worker_id: str,
    display_name: str,
    contact: str,
    partition: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Register a worker on first contact; return the existing record otherwise.

    New workers get the standard role and the default daily quota
    (WORKPOOL_DEFAULT_QUOTA, 20 unless set).

    Examples:

    \b
        workpool-tool pool worker-ensure w1 --name "Ada" --contact ada@example.com
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            worker = engine.ensure_worker(worker_id, display_name, contact, partition)
        _show(worker, f"✅ Worker '{worker.id}' ready", text)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint("WORKER_ID (non-empty)"), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-get")
@click.argument("worker_id")
@pool_options
@click.pass_context
def worker_get_command(
    ctx: click.Context,
    worker_id: str,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Show a worker together with today's claim count and remaining quota.

    Examples:

    \b
        workpool-tool pool worker-get w1 --text
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone) as engine:
            worker = engine.get_worker(worker_id)
            claimed_today = engine.items_claimed_today(worker_id)
            remaining = engine.remaining_quota(worker_id)

        if text:
            _show(worker, f"{worker.id}", text)
            output_text(f"   Claimed today: {claimed_today}")
            output_text(f"   Remaining quota: {remaining}")
        else:
            output_json(
                {**worker.to_dict(), "claimed_today": claimed_today, "remaining_quota": remaining}
            )

    except NotFoundError as e:
        fail(ctx, text, str(e), "Register the worker with worker-ensure first", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-list")
@click.option("--active-only", is_flag=True, help="Hide deactivated workers")
@click.option("--role", type=ROLE_CHOICE, help="Only workers with this role")
@pool_options
@click.pass_context
def worker_list_command(
    ctx: click.Context,
    active_only: bool,
    role: str | None,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """List workers in registration order.

    Examples:

    \b
        workpool-tool pool worker-list --active-only --role standard
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone) as engine:
            workers = engine.list_workers(active_only, WorkerRole(role) if role else None)

        if text:
            if not workers:
                output_text("No workers found")
            for worker in workers:
                status = "active" if worker.active else "inactive"
                output_text(
                    f"{worker.id}  {worker.display_name}  {worker.role.value}  "
                    f"{status}  quota={worker.daily_quota}"
                )
        else:
            output_json([worker.to_dict() for worker in workers])

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-quota")
@click.argument("worker_id")
@click.argument("quota", type=int)
@events_option
@pool_options
@click.pass_context
def worker_quota_command(
    ctx: click.Context,
    worker_id: str,
    quota: int,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Set a worker's daily quota. Applies from the next claim.

    Examples:

    \b
        workpool-tool pool worker-quota w1 40
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            worker = engine.set_quota(worker_id, quota)
        _show(worker, f"✅ Daily quota of '{worker.id}' set to {quota}", text)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the worker id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint("QUOTA (zero or more)"), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-role")
@click.argument("worker_id")
@click.argument("role", type=ROLE_CHOICE)
@events_option
@pool_options
@click.pass_context
def worker_role_command(
    ctx: click.Context,
    worker_id: str,
    role: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Change a worker's role. Only standard workers can self-claim.

    Examples:

    \b
        workpool-tool pool worker-role w1 elevated
    """
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            worker = engine.set_role(worker_id, WorkerRole(role))
        _show(worker, f"✅ Role of '{worker.id}' set to {role}", text)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the worker id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


def _set_active(
    ctx: click.Context,
    worker_id: str,
    active: bool,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    setup_logging(verbose)

    try:
        with open_engine(table, region, profile, timezone, events) as engine:
            if active:
                worker = engine.activate_worker(worker_id)
            else:
                worker = engine.deactivate_worker(worker_id)
        state = "activated" if active else "deactivated"
        _show(worker, f"✅ Worker '{worker.id}' {state}", text)

    except NotFoundError as e:
        fail(ctx, text, str(e), "Check the worker id", 2)

    except ValueError as e:
        fail(ctx, text, str(e), value_hint(), 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check table exists and AWS credentials", 3)


@click.command("worker-deactivate")
@click.argument("worker_id")
@events_option
@pool_options
@click.pass_context
def worker_deactivate_command(
    ctx: click.Context,
    worker_id: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Stop new claims for a worker. Owned items keep their attribution.

    Examples:

    \b
        workpool-tool pool worker-deactivate w1
    """
    _set_active(ctx, worker_id, False, events, table, region, profile, timezone, text, verbose)


@click.command("worker-activate")
@click.argument("worker_id")
@events_option
@pool_options
@click.pass_context
def worker_activate_command(
    ctx: click.Context,
    worker_id: str,
    events: bool,
    table: str,
    region: str | None,
    profile: str | None,
    timezone: str,
    text: bool,
    verbose: int,
) -> None:
    """Allow new claims for a worker again.

    Examples:

    \b
        workpool-tool pool worker-activate w1
    """
    _set_active(ctx, worker_id, True, events, table, region, profile, timezone, text, verbose)
