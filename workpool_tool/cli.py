"""CLI entry point for workpool-tool."""

import click

from workpool_tool.pool.commands.claim_commands import claim_command, distribute_command
from workpool_tool.pool.commands.item_commands import (
    add_items_command,
    item_get_command,
    worker_items_command,
)
from workpool_tool.pool.commands.lifecycle_commands import (
    convert_command,
    reset_command,
    resolve_command,
    unconvert_command,
)
from workpool_tool.pool.commands.report_commands import (
    buckets_command,
    leaderboard_command,
    overview_command,
    summarize_command,
)
from workpool_tool.pool.commands.table_commands import create_table_command, drop_table_command
from workpool_tool.pool.commands.worker_commands import (
    worker_activate_command,
    worker_deactivate_command,
    worker_ensure_command,
    worker_get_command,
    worker_list_command,
    worker_quota_command,
    worker_role_command,
)


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """Assign a shared pool of phone numbers to moderators and track the results"""
    pass


@main.group("pool")
def pool() -> None:
    """DynamoDB-backed work pool with quota-limited claims and reporting"""
    pass


# Register table commands
pool.add_command(create_table_command)
pool.add_command(drop_table_command)

# Register item commands
pool.add_command(add_items_command)
pool.add_command(item_get_command)
pool.add_command(worker_items_command)

# Register claim commands
pool.add_command(claim_command)
pool.add_command(distribute_command)

# Register lifecycle commands
pool.add_command(resolve_command)
pool.add_command(convert_command)
pool.add_command(unconvert_command)
pool.add_command(reset_command)

# Register worker commands
pool.add_command(worker_ensure_command)
pool.add_command(worker_get_command)
pool.add_command(worker_list_command)
pool.add_command(worker_quota_command)
pool.add_command(worker_role_command)
pool.add_command(worker_deactivate_command)
pool.add_command(worker_activate_command)

# Register report commands
pool.add_command(summarize_command)
pool.add_command(buckets_command)
pool.add_command(leaderboard_command)
pool.add_command(overview_command)

if __name__ == "__main__":
    main()
