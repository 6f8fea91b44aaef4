"""
Live collection subscriptions.

A client that wants to follow a collection (its tasks, a group's posts, ...)
asks the ChangeFeed for a Subscription. The subscription first delivers a
``snapshot`` event with the current documents, then one event per change
(``added``, ``modified``, ``removed``), each carrying a fresh snapshot. It stays
registered until ``unsubscribe()`` is called or the ``with`` block exits.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

SNAPSHOT = "snapshot"
ADDED = "added"
MODIFIED = "modified"
REMOVED = "removed"

_CLOSED = object()


@dataclass
class ChangeEvent:
    """One notification delivered to a subscriber."""
    kind: str
    collection: str
    scope: str
    doc_id: Optional[object] = None
    snapshot: list = field(default_factory=list)


class Subscription:
    """Handle on one live query. Iterate it, poll it with get(), then unsubscribe."""

    def __init__(
        self,
        feed: "ChangeFeed",
        collection: str,
        scope: str,
        loader: Callable[[], list],
    ):
        self.feed = feed
        self.collection = collection
        self.scope = scope
        self.loader = loader
        self.closed = False
        self._queue: queue.Queue = queue.Queue()

    def _deliver(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """
        Next pending event.

        Returns:
            The event, or None when the timeout passes or the subscription is closed.
        """
        if self.closed and self._queue.empty():
            return None
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return event

    def pending(self) -> list[ChangeEvent]:
        """Drain every event already queued without blocking."""
        events = []
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return events
            if event is _CLOSED:
                # Leave the marker for iterators still waiting on this queue
                self._queue.put(_CLOSED)
                return events
            events.append(event)

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self._queue.get()
            if event is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield event

    def unsubscribe(self) -> None:
        """Stop receiving events and release the registration. Safe to call twice."""
        if self.closed:
            return
        self.closed = True
        self.feed._remove(self)
        self._queue.put(_CLOSED)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class ChangeFeed:
    """Routes document changes to the subscriptions watching their scope."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: dict[tuple[str, str], list[Subscription]] = {}

    def subscribe(self, collection: str, scope: str, loader: Callable[[], list]) -> Subscription:
        """
        Watch one collection scope.

        Args:
            collection: Collection name, e.g. "tasks".
            scope: Owner key within the collection (user uid or group id).
            loader: Returns the current documents of the scope.
        """
        subscription = Subscription(self, collection, str(scope), loader)
        with self._lock:
            self._subscriptions.setdefault((collection, str(scope)), []).append(subscription)
        subscription._deliver(ChangeEvent(
            kind=SNAPSHOT,
            collection=collection,
            scope=str(scope),
            snapshot=loader(),
        ))
        logger.debug(f"Subscribed to {collection}/{scope}")
        return subscription

    def publish(self, collection: str, scope, kind: str, doc_id=None) -> None:
        """Notify every subscription on (collection, scope) of one change."""
        with self._lock:
            subscriptions = list(self._subscriptions.get((collection, str(scope)), []))

        for subscription in subscriptions:
            try:
                snapshot = subscription.loader()
            except Exception as e:
                logger.error(f"Error loading {collection}/{scope} snapshot for subscriber: {e}")
                continue
            subscription._deliver(ChangeEvent(
                kind=kind,
                collection=collection,
                scope=str(scope),
                doc_id=doc_id,
                snapshot=snapshot,
            ))

    def subscriber_count(self, collection: Optional[str] = None, scope=None) -> int:
        """Number of live subscriptions, optionally narrowed to a collection/scope."""
        with self._lock:
            return sum(
                len(subs)
                for (coll, sc), subs in self._subscriptions.items()
                if (collection is None or coll == collection)
                and (scope is None or sc == str(scope))
            )

    def _remove(self, subscription: Subscription) -> None:
        key = (subscription.collection, subscription.scope)
        with self._lock:
            subs = self._subscriptions.get(key, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(key, None)
        logger.debug(f"Unsubscribed from {subscription.collection}/{subscription.scope}")
