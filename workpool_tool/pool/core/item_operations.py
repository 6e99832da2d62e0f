"""
Work item intake and lookup operations.
"""

import uuid
from collections.abc import Iterable

from ..exceptions import DuplicateKeyError, ItemNotFoundError
from ..logging_config import get_logger
from ..models import Campaign, ChangeKind, IntakeResult, ItemStatus, WorkItem
from ..utils import normalize_item_key
from ..windows import day_window
from .context import EngineContext

logger = get_logger(__name__)


def add_items(ctx: EngineContext, keys: Iterable[str], campaign: Campaign) -> IntakeResult:
    """
    Add already-parsed keys to the pool as unclaimed items.

    Keys are stripped of surrounding whitespace and empty keys are skipped.
    A key repeated in the batch, or already present in the campaign, is
    reported as a duplicate rather than raised.

    Args:
        ctx: Engine context
        keys: Work item keys (phone numbers)
        campaign: Campaign the items belong to

    Returns:
        IntakeResult with created items and duplicate keys
    """
    result = IntakeResult()
    seen: set[str] = set()

    for raw_key in keys:
        key = normalize_item_key(raw_key)
        if not key:
            continue
        if key in seen:
            result.duplicates.append(key)
            continue
        seen.add(key)

        item = WorkItem(
            id=str(uuid.uuid4()),
            key=key,
            campaign=campaign,
            created_at=ctx.now(),
        )
        try:
            created = ctx.store.create_item(item)
        except DuplicateKeyError:
            logger.debug(f"Key '{key}' already in campaign '{campaign.value}'")
            result.duplicates.append(key)
            continue

        result.created.append(created)
        ctx.emit(ChangeKind.ITEM_CREATED, created.id, created.version, None, created.to_dict())

    logger.info(
        f"Added {len(result.created)} items to '{campaign.value}' "
        f"({len(result.duplicates)} duplicates)"
    )
    return result


def get_item(ctx: EngineContext, item_id: str) -> WorkItem:
    """
    Read a work item.

    Raises:
        ItemNotFoundError: If the item does not exist
    """
    item = ctx.store.get_item(item_id)
    if item is None:
        raise ItemNotFoundError(f"Item '{item_id}' not found")
    return item


def list_worker_items(
    ctx: EngineContext,
    worker_id: str,
    status: ItemStatus | None = None,
    claimed_today: bool = False,
    limit: int | None = None,
) -> list[WorkItem]:
    """
    Items currently owned by a worker, oldest claim first.

    Args:
        ctx: Engine context
        worker_id: Owner to list
        status: Only items in this status (default: any)
        claimed_today: Only items claimed during the current calendar day
        limit: Maximum number of items to return

    Returns:
        List of work items
    """
    today = day_window(ctx.now(), ctx.config.tz) if claimed_today else None
    items = [
        item
        for item in ctx.store.iter_items(owner_id=worker_id)
        if (status is None or item.status is status)
        and (today is None or today.contains(item.claimed_at))
    ]
    items.sort(key=lambda item: (item.claimed_at or item.created_at, item.id))
    return items[:limit] if limit is not None else items
