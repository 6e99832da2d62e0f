"""
Table management commands for the work pool.
"""

from typing import Literal

import click

from ..constants import DEFAULT_TABLE_NAME
from ..core.table_operations import check_table_exists, create_table, drop_table
from ..exceptions import TableAlreadyExistsError, TableNotFoundError, WorkPoolError
from ..logging_config import get_logger, setup_logging
from ..utils import output_json, output_text, validate_table_name
from .common import fail

logger = get_logger(__name__)


@click.command("create-table")
@click.option(
    "--table",
    envvar="WORKPOOL_TABLE",
    default=DEFAULT_TABLE_NAME,
    help="DynamoDB table name",
)
@click.option("--region", envvar="AWS_REGION", help="AWS region")
@click.option("--profile", envvar="AWS_PROFILE", help="AWS profile")
@click.option(
    "--billing",
    type=click.Choice(["on-demand", "provisioned"]),
    default="on-demand",
    help="Billing mode (default: on-demand)",
)
@click.option(
    "--if-not-exists",
    is_flag=True,
    help="Succeed without changes when the table already exists",
)
@click.option("--text", is_flag=True, help="Output as human-readable text")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v INFO, -vv DEBUG, -vvv TRACE)",
)
@click.pass_context
def create_table_command(
    ctx: click.Context,
    table: str,
    region: str | None,
    profile: str | None,
    billing: str,
    if_not_exists: bool,
    text: bool,
    verbose: int,
) -> None:
    """Create DynamoDB table for the work pool.

    Creates a table with partition key (PK), sort key (SK) and two sparse
    secondary indexes: pool-index (unclaimed items per campaign, oldest
    first) and owner-index (items per owner, by claim time).

    Examples:

    \b
        # Create table with default name
        workpool-tool pool create-table

    \b
        # Create table with custom name, skip if present
        workpool-tool pool create-table --table my-pool --if-not-exists

    \b
        # Create with provisioned billing
        workpool-tool pool create-table --billing provisioned

    \b
    Output Format:
        Returns JSON with table details:
        {"table": "...", "status": "CREATING", "arn": "..."}
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        if if_not_exists and check_table_exists(table, region, profile):
            logger.info(f"Table '{table}' already exists, nothing to do")
            if text:
                output_text(f"✅ Table '{table}' already exists")
            else:
                output_json({"table": table, "status": "EXISTS"})
            return

        logger.info(f"Creating table '{table}'")
        logger.debug(f"Region: {region}, Billing: {billing}")

        billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = (
            "PAY_PER_REQUEST" if billing == "on-demand" else "PROVISIONED"
        )
        table_desc = create_table(table, region, profile, billing_mode)

        if text:
            output_text(f"✅ Table '{table}' created successfully")
            output_text(f"Status: {table_desc['TableStatus']}")
            output_text(f"ARN: {table_desc['TableArn']}")
        else:
            output_json(
                {
                    "table": table,
                    "status": table_desc["TableStatus"],
                    "arn": table_desc["TableArn"],
                }
            )

    except TableAlreadyExistsError as e:
        fail(
            ctx,
            text,
            str(e),
            f"Use a different table name, pass --if-not-exists, or drop it with "
            f"'workpool-tool pool drop-table --table {table} --approve'",
            1,
        )

    except ValueError as e:
        fail(ctx, text, str(e), "Use 3-255 characters: letters, digits, '-', '_', '.'", 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check AWS credentials and permissions", 3)


@click.command("drop-table")
@click.option(
    "--table",
    envvar="WORKPOOL_TABLE",
    default=DEFAULT_TABLE_NAME,
    help="DynamoDB table name",
)
@click.option("--region", envvar="AWS_REGION", help="AWS region")
@click.option("--profile", envvar="AWS_PROFILE", help="AWS profile")
@click.option(
    "--approve",
    is_flag=True,
    help="Required flag to confirm table deletion",
)
@click.option("--text", is_flag=True, help="Output as human-readable text")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v INFO, -vv DEBUG, -vvv TRACE)",
)
@click.pass_context
def drop_table_command(
    ctx: click.Context,
    table: str,
    region: str | None,
    profile: str | None,
    approve: bool,
    text: bool,
    verbose: int,
) -> None:
    """Drop DynamoDB table for the work pool.

    WARNING: This permanently deletes the table, every work item and every
    worker record.

    Examples:

    \b
        # Attempt without approval (shows warning)
        workpool-tool pool drop-table

    \b
        # Drop custom table
        workpool-tool pool drop-table --table my-pool --approve

    \b
    Output Format:
        Returns JSON with confirmation:
        {"table": "...", "status": "DELETING"}
    """
    setup_logging(verbose)

    if not approve:
        if text:
            click.echo("⚠️  WARNING: Table deletion requires approval", err=True)
            click.echo(f"\nThis will permanently delete table '{table}' and ALL data.", err=True)
            cmd = f"workpool-tool pool drop-table --table {table} --approve"
            click.echo(f"\nTo proceed, use: {cmd}", err=True)
            ctx.exit(2)
        fail(
            ctx,
            text,
            "Table deletion requires approval",
            f"Add --approve flag to confirm: "
            f"workpool-tool pool drop-table --table {table} --approve",
            2,
        )

    try:
        logger.info(f"Dropping table '{table}'")
        table_desc = drop_table(table, region, profile)

        if text:
            output_text(f"✅ Table '{table}' deletion initiated")
            output_text(f"Status: {table_desc['TableStatus']}")
        else:
            output_json({"table": table, "status": table_desc["TableStatus"]})

    except TableNotFoundError as e:
        fail(ctx, text, str(e), "Check table name or list tables with AWS CLI", 2)

    except WorkPoolError as e:
        fail(ctx, text, str(e), "Check AWS credentials and permissions", 3)
