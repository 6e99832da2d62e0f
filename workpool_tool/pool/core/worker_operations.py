"""
Worker registry operations.

Workers are created on first contact and never deleted; deactivation only
flips a flag so historical claims keep their attribution in reports.
"""

from typing import Any

from ..constants import DEFAULT_PARTITION
from ..exceptions import ConditionFailedError, WorkerNotFoundError
from ..logging_config import get_logger
from ..models import ChangeKind, Worker, WorkerRole
from .context import EngineContext

logger = get_logger(__name__)


def ensure_worker(
    ctx: EngineContext,
    worker_id: str,
    display_name: str,
    contact: str,
    partition: str = DEFAULT_PARTITION,
) -> Worker:
    """
    Return the worker record, creating it on first contact.

    New workers get the standard role and the configured default quota. The
    create is conditional, so two concurrent first contacts produce one record.

    Args:
        ctx: Engine context
        worker_id: Identity supplied by the auth layer
        display_name: Name shown on dashboards
        contact: Contact address (e-mail)
        partition: Dashboard view tag

    Returns:
        The existing or newly created worker
    """
    if not worker_id:
        raise ValueError("Worker id cannot be empty")

    worker = Worker(
        id=worker_id,
        display_name=display_name,
        contact=contact,
        created_at=ctx.now(),
        role=WorkerRole.STANDARD,
        active=True,
        daily_quota=ctx.config.default_daily_quota,
        partition=partition,
    )
    if ctx.store.create_worker(worker):
        logger.info(f"Created worker '{worker_id}' with quota {worker.daily_quota}")
        ctx.emit(ChangeKind.WORKER_CREATED, worker_id, worker.version, worker_id, worker.to_dict())
        return worker

    existing = ctx.store.get_worker(worker_id)
    if existing is None:
        raise WorkerNotFoundError(f"Worker '{worker_id}' vanished during creation")
    return existing


def get_worker(ctx: EngineContext, worker_id: str) -> Worker:
    """
    Read a worker.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    worker = ctx.store.get_worker(worker_id)
    if worker is None:
        raise WorkerNotFoundError(f"Worker '{worker_id}' not found")
    return worker


def list_workers(
    ctx: EngineContext, active_only: bool = False, role: WorkerRole | None = None
) -> list[Worker]:
    """List workers ordered by creation time."""
    workers = [
        worker
        for worker in ctx.store.iter_workers()
        if (not active_only or worker.active) and (role is None or worker.role is role)
    ]
    workers.sort(key=lambda worker: (worker.created_at, worker.id))
    return workers


def _update_worker(ctx: EngineContext, worker_id: str, changes: dict[str, Any]) -> Worker:
    changes["updated_at"] = ctx.now()
    try:
        worker = ctx.store.update_worker(worker_id, changes)
    except ConditionFailedError:
        raise WorkerNotFoundError(f"Worker '{worker_id}' not found")

    ctx.emit(ChangeKind.WORKER_UPDATED, worker_id, worker.version, worker_id, worker.to_dict())
    return worker


def set_quota(ctx: EngineContext, worker_id: str, quota: int) -> Worker:
    """
    Change a worker's daily quota. Takes effect on the next claim.

    Raises:
        ValueError: If quota is negative
        WorkerNotFoundError: If the worker does not exist
    """
    if quota < 0:
        raise ValueError("Daily quota cannot be negative")
    logger.info(f"Setting daily quota of '{worker_id}' to {quota}")
    return _update_worker(ctx, worker_id, {"daily_quota": quota})


def set_role(ctx: EngineContext, worker_id: str, role: WorkerRole) -> Worker:
    """
    Change a worker's role. Only standard workers receive self-service claims.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    logger.info(f"Setting role of '{worker_id}' to {role.value}")
    return _update_worker(ctx, worker_id, {"role": role})


def deactivate_worker(ctx: EngineContext, worker_id: str) -> Worker:
    """
    Stop new claims for a worker. Items it already owns stay attributed to it.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    logger.info(f"Deactivating worker '{worker_id}'")
    return _update_worker(ctx, worker_id, {"active": False})


def activate_worker(ctx: EngineContext, worker_id: str) -> Worker:
    """
    Allow new claims for a worker again.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    logger.info(f"Activating worker '{worker_id}'")
    return _update_worker(ctx, worker_id, {"active": True})
