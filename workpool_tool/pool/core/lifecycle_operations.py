"""
Lifecycle operations for claimed work items.

    unclaimed --claim--> claimed --resolve--> resolved
        ^                                        |
        +------------------reset-----------------+

Forward moves are compare-and-set on the version read just before the write:
if anything changed the item in between, the write is rejected and the caller
gets InvalidTransitionError describing the fresh state, never a lost update.
Reset is the only backward move; it applies from any state and is a no-op on
an item that is already unclaimed.
"""

from typing import Any

from ..exceptions import ConditionFailedError, InvalidTransitionError, ItemNotFoundError
from ..logging_config import get_logger
from ..models import ChangeKind, ItemStatus, Outcome, WorkItem
from ..windows import quota_day
from .context import EngineContext
from .store import QuotaCharge

logger = get_logger(__name__)

_RESET_CHANGES: dict[str, Any] = {
    "status": ItemStatus.UNCLAIMED,
    "owner_id": None,
    "outcome": None,
    "conversion": False,
    "conversion_at": None,
    "conversion_note": None,
    "claimed_at": None,
    "resolved_at": None,
}

# Reads and conditional writes a reset makes before giving up on a busy item
_RESET_ATTEMPTS = 2


def _load(ctx: EngineContext, item_id: str) -> WorkItem:
    item = ctx.store.get_item(item_id)
    if item is None:
        raise ItemNotFoundError(f"Item '{item_id}' not found")
    return item


def _state(item: WorkItem) -> str:
    if item.outcome is not None:
        return f"{item.status.value}/{item.outcome.value}"
    return item.status.value


def _commit(
    ctx: EngineContext, item: WorkItem, operation: str, changes: dict[str, Any]
) -> WorkItem:
    try:
        return ctx.store.update_item(item.id, changes, expected={"version": item.version})
    except ConditionFailedError:
        fresh = ctx.store.get_item(item.id)
        if fresh is None:
            raise ItemNotFoundError(f"Item '{item.id}' not found")
        logger.debug(f"Lost race on {operation} for '{item.id}' (version {item.version})")
        raise InvalidTransitionError(item.id, _state(fresh), operation, "item changed concurrently")


def resolve(
    ctx: EngineContext,
    item_id: str,
    outcome: Outcome | str,
    worker_id: str | None = None,
) -> WorkItem:
    """
    Record the terminal outcome of a claimed item.

    Args:
        ctx: Engine context
        item_id: Item to resolve
        outcome: Outcome.CAPABLE or Outcome.NOT_CAPABLE (or their values)
        worker_id: If given, the item must be owned by this worker

    Returns:
        The resolved item

    Raises:
        ValueError: If outcome is not a known value
        ItemNotFoundError: If the item does not exist
        InvalidTransitionError: If the item is not claimed (or not by worker_id)
    """
    outcome = Outcome(outcome)
    item = _load(ctx, item_id)

    if item.status is not ItemStatus.CLAIMED:
        raise InvalidTransitionError(item.id, _state(item), "resolve")
    if worker_id is not None and item.owner_id != worker_id:
        raise InvalidTransitionError(
            item.id, _state(item), "resolve", f"owned by '{item.owner_id}', not '{worker_id}'"
        )

    resolved_at = max(ctx.now(), item.claimed_at or item.created_at)
    updated = _commit(
        ctx,
        item,
        "resolve",
        {"status": ItemStatus.RESOLVED, "outcome": outcome, "resolved_at": resolved_at},
    )
    logger.info(f"Resolved item '{item.id}' as {outcome.value}")
    ctx.emit(ChangeKind.ITEM_RESOLVED, updated.id, updated.version, updated.owner_id, updated.to_dict())
    return updated


def record_conversion(ctx: EngineContext, item_id: str, note: str | None = None) -> WorkItem:
    """
    Mark a capable item as converted.

    The first call stamps the conversion time; later calls only replace the
    note (a None note keeps the existing one).

    Raises:
        ItemNotFoundError: If the item does not exist
        InvalidTransitionError: Unless the item is resolved with a capable outcome
    """
    item = _load(ctx, item_id)
    if item.status is not ItemStatus.RESOLVED or item.outcome is not Outcome.CAPABLE:
        raise InvalidTransitionError(
            item.id, _state(item), "record conversion for", "requires resolved/capable"
        )

    changes: dict[str, Any] = {"conversion": True}
    if not item.conversion:
        changes["conversion_at"] = max(ctx.now(), item.resolved_at or item.created_at)
        changes["conversion_note"] = note
    elif note is not None:
        changes["conversion_note"] = note

    updated = _commit(ctx, item, "record conversion for", changes)
    ctx.emit(
        ChangeKind.ITEM_CONVERSION_RECORDED,
        updated.id,
        updated.version,
        updated.owner_id,
        updated.to_dict(),
    )
    return updated


def clear_conversion(ctx: EngineContext, item_id: str) -> WorkItem:
    """
    Remove a recorded conversion. The outcome is left untouched.

    Clearing an item without a conversion returns it unchanged.

    Raises:
        ItemNotFoundError: If the item does not exist
        InvalidTransitionError: If the item changed concurrently
    """
    item = _load(ctx, item_id)
    if not item.conversion:
        return item

    updated = _commit(
        ctx,
        item,
        "clear conversion for",
        {"conversion": False, "conversion_at": None, "conversion_note": None},
    )
    ctx.emit(
        ChangeKind.ITEM_CONVERSION_CLEARED,
        updated.id,
        updated.version,
        updated.owner_id,
        updated.to_dict(),
    )
    return updated


def _release(ctx: EngineContext, item: WorkItem) -> QuotaCharge | None:
    if item.owner_id is None or item.claimed_at is None:
        return None
    return QuotaCharge(item.owner_id, quota_day(item.claimed_at, ctx.config.tz), delta=-1)


def reset(ctx: EngineContext, item_id: str) -> WorkItem:
    """
    Return an item to the shared pool from any state.

    Clears owner, outcome, conversion and claim/resolve timestamps, and gives
    the claim back to the owner's day counter. Resetting an unclaimed item is
    a no-op and publishes nothing. The write is conditional on the version
    just read; if the item changes in between it is read again and the reset
    retried once, so the published event always names the owner whose claim
    was actually cleared.

    Raises:
        ItemNotFoundError: If the item does not exist
        InvalidTransitionError: If the item kept changing concurrently
    """
    for attempt in range(_RESET_ATTEMPTS):
        item = _load(ctx, item_id)
        if item.status is ItemStatus.UNCLAIMED:
            return item
        try:
            updated = ctx.store.update_item(
                item.id,
                _RESET_CHANGES,
                expected={"version": item.version},
                charge=_release(ctx, item),
            )
        except ConditionFailedError:
            logger.debug(f"Item '{item.id}' changed during reset (attempt {attempt + 1})")
            continue

        logger.info(f"Reset item '{item.id}' (was {_state(item)}, owner '{item.owner_id}')")
        ctx.emit(ChangeKind.ITEM_RESET, updated.id, updated.version, item.owner_id, updated.to_dict())
        return updated

    fresh = _load(ctx, item_id)
    raise InvalidTransitionError(fresh.id, _state(fresh), "reset", "item changed concurrently")
