"""
Custom exceptions for work pool operations.
"""


class WorkPoolError(Exception):
    """Base exception for work pool operations."""

    pass


class QuotaExceededError(WorkPoolError):
    """Worker has no remaining self-service quota for today."""

    def __init__(self, worker_id: str, daily_quota: int):
        self.worker_id = worker_id
        self.daily_quota = daily_quota
        super().__init__(
            f"Worker '{worker_id}' has used its daily quota of {daily_quota} items"
        )


class InvalidTransitionError(WorkPoolError):
    """Lifecycle move is not legal from the item's current state."""

    def __init__(self, item_id: str, current_status: str, operation: str, reason: str = ""):
        self.item_id = item_id
        self.current_status = current_status
        self.operation = operation
        message = f"Cannot {operation} item '{item_id}' while it is {current_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotFoundError(WorkPoolError):
    """Referenced entity does not exist."""

    pass


class ItemNotFoundError(NotFoundError):
    """Work item does not exist."""

    pass


class WorkerNotFoundError(NotFoundError):
    """Worker does not exist."""

    pass


class DuplicateKeyError(WorkPoolError):
    """Key already exists in the campaign."""

    pass


class ConditionFailedError(WorkPoolError):
    """Conditional update failed.

    For a cancelled transaction, `reasons` holds one cancellation code per
    write in request order ("None" for writes that did not fail).
    """

    def __init__(self, message: str, reasons: list[str] | None = None):
        self.reasons = reasons or []
        super().__init__(message)


class StoreUnavailableError(WorkPoolError):
    """Entity store could not complete the operation. Safe for the caller to retry."""

    pass


class StoreThrottledError(StoreUnavailableError):
    """DynamoDB throttling occurred."""

    pass


class TableNotFoundError(StoreUnavailableError):
    """DynamoDB table does not exist."""

    pass


class StorePermissionError(WorkPoolError):
    """AWS permission denied."""

    pass


class TableAlreadyExistsError(WorkPoolError):
    """DynamoDB table already exists."""

    pass
