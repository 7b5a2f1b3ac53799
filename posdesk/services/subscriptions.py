"""Reference counted realtime subscriptions over the document store."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, List, Optional

from posdesk.services.store import DocumentStore, Snapshot

logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[Snapshot], None]


@dataclass
class _Entry:
    consumers: Dict[int, SnapshotConsumer] = field(default_factory=dict)
    snapshot: Optional[Snapshot] = None
    unsubscribe: Optional[Callable[[], None]] = None


class SubscriptionHandle:
    """Returned by :meth:`SubscriptionManager.attach`; close it to detach."""

    def __init__(self, manager: "SubscriptionManager", path: str, token: int) -> None:
        self._manager = manager
        self.path = path
        self.token = token
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._manager.detach(self)

    def __enter__(self) -> "SubscriptionHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class SubscriptionManager:
    """Shares one store listener per collection path between many consumers.

    The first consumer attached to a path opens the store listener, later
    consumers get the cached snapshot straight away, and the listener is
    torn down when the last consumer detaches.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._entries: Dict[str, _Entry] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def attach(self, path: str, consumer: SnapshotConsumer) -> SubscriptionHandle:
        token = next(self._tokens)
        with self._lock:
            entry = self._entries.get(path)
            is_new = entry is None
            if entry is None:
                entry = _Entry()
                self._entries[path] = entry
            entry.consumers[token] = consumer
            cached = entry.snapshot

        if is_new:
            logger.info("Opening realtime listener for %s", path)
            entry.unsubscribe = self._store.listen(path, lambda snapshot: self._dispatch(path, snapshot))
        elif cached is not None:
            self._call(path, consumer, list(cached))
        return SubscriptionHandle(self, path, token)

    def detach(self, handle: SubscriptionHandle) -> None:
        unsubscribe = None
        with self._lock:
            entry = self._entries.get(handle.path)
            if entry is None:
                return
            entry.consumers.pop(handle.token, None)
            if not entry.consumers:
                self._entries.pop(handle.path, None)
                unsubscribe = entry.unsubscribe
        if unsubscribe is not None:
            logger.info("Closing realtime listener for %s", handle.path)
            unsubscribe()

    def latest(self, path: str) -> Optional[Snapshot]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None or entry.snapshot is None:
                return None
            return list(entry.snapshot)

    def consumer_count(self, path: str) -> int:
        with self._lock:
            entry = self._entries.get(path)
            return len(entry.consumers) if entry else 0

    def active_paths(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()
        for path, entry in entries:
            if entry.unsubscribe is not None:
                logger.info("Closing realtime listener for %s", path)
                entry.unsubscribe()

    def _dispatch(self, path: str, snapshot: Snapshot) -> None:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return
            entry.snapshot = snapshot
            consumers = list(entry.consumers.values())
        for consumer in consumers:
            self._call(path, consumer, list(snapshot))

    @staticmethod
    def _call(path: str, consumer: SnapshotConsumer, snapshot: Snapshot) -> None:
        try:
            consumer(snapshot)
        except Exception:
            logger.exception("Snapshot consumer for %s failed", path)
