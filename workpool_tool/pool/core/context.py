"""
Engine context passed explicitly to every operation.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..config import EngineConfig
from ..models import ChangeEvent, ChangeKind
from ..utils import utc_now
from .notifications import NotificationHub
from .store import EntityStore

Clock = Callable[[], datetime]


@dataclass
class EngineContext:
    """
    Store handle, configuration, notification hub and clock.

    Operations hold no state of their own between calls; everything they
    need arrives through this object.
    """

    store: EntityStore
    config: EngineConfig = field(default_factory=EngineConfig)
    hub: NotificationHub = field(default_factory=NotificationHub)
    clock: Clock = utc_now

    def now(self) -> datetime:
        return self.clock()

    def emit(
        self,
        kind: ChangeKind,
        entity_id: str,
        version: int,
        worker_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.hub.publish(
            ChangeEvent(
                kind=kind,
                entity_id=entity_id,
                occurred_at=self.now(),
                version=version,
                worker_id=worker_id,
                payload=payload or {},
            )
        )
