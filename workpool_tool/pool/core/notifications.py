"""
Change-event fan-out.

Observers are called synchronously after a transition has been committed to
the store. Delivery is fire-and-forget: an observer that raises is logged and
skipped, and neither the caller nor the remaining observers see the failure.
"""

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..logging_config import get_logger
from ..models import ChangeEvent, ChangeKind

logger = get_logger(__name__)

Observer = Callable[[ChangeEvent], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop delivery."""

    hub: "NotificationHub"
    observer: Observer
    kinds: frozenset[ChangeKind] | None = None

    def wants(self, event: ChangeEvent) -> bool:
        return self.kinds is None or event.kind in self.kinds

    def unsubscribe(self) -> None:
        self.hub.unsubscribe(self)


class NotificationHub:
    """Registry of observers interested in change events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self, observer: Observer, kinds: Iterable[ChangeKind] | None = None
    ) -> Subscription:
        """
        Register an observer.

        Args:
            observer: Callable receiving each ChangeEvent
            kinds: Only deliver these event kinds (default: all)

        Returns:
            Subscription handle
        """
        subscription = Subscription(
            hub=self,
            observer=observer,
            kinds=frozenset(kinds) if kinds is not None else None,
        )
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Unknown subscriptions are ignored."""
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every matching observer.

        Returns:
            Number of observers that handled the event without raising
        """
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.wants(event)]

        delivered = 0
        for subscription in targets:
            try:
                subscription.observer(event)
                delivered += 1
            except Exception:
                logger.exception(
                    f"Observer {subscription.observer!r} failed on {event.kind.value} "
                    f"for '{event.entity_id}'"
                )
        return delivered
