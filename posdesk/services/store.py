from __future__ import annotations

import copy
import itertools
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from threading import RLock
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from posdesk.services.exceptions import (
    InvalidInput,
    MissingOrganization,
    NotFound,
    TransactionAborted,
)

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotListener = Callable[[Snapshot], None]

COLLECTIONS = (
    "customers",
    "suppliers",
    "invoices",
    "quotes",
    "payments",
    "orders",
    "receipts",
    "tables",
    "orderTypes",
    "paymentTypes",
    "receiptTemplates",
    "invoiceTemplates",
    "quoteTemplates",
    "settings",
)

_ID_PREFIXES = {
    "customers": "CUS",
    "suppliers": "SUP",
    "invoices": "INV",
    "quotes": "QUO",
    "payments": "PAY",
    "orders": "ORD",
    "receipts": "RCT",
    "tables": "TBL",
    "orderTypes": "OTY",
    "paymentTypes": "PTY",
    "receiptTemplates": "RTP",
    "invoiceTemplates": "ITP",
    "quoteTemplates": "QTP",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def collection_path(organization_id: Optional[str], collection: str) -> str:
    if not organization_id or not str(organization_id).strip():
        raise MissingOrganization()
    if collection not in COLLECTIONS:
        raise InvalidInput(f"Unknown collection '{collection}'")
    return f"organizations/{organization_id}/{collection}"


def document_path(organization_id: Optional[str], collection: str, document_id: str) -> str:
    if not document_id:
        raise InvalidInput("A document id is required")
    return f"{collection_path(organization_id, collection)}/{document_id}"


def split_path(path: str) -> Tuple[str, str]:
    """Split ``organizations/{org}/{collection}/{doc}`` into collection path and id."""

    parts = path.strip("/").split("/")
    if len(parts) != 4 or parts[0] != "organizations":
        raise InvalidInput(f"Invalid document path '{path}'")
    return "/".join(parts[:3]), parts[3]


class Transaction:
    """Staged writes applied together when the owning block exits cleanly."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._writes: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        return await self._store.get(path)

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        self._writes.append(("update", path, dict(fields)))

    def set(self, path: str, data: Mapping[str, Any]) -> None:
        self._writes.append(("set", path, dict(data)))

    def delete(self, path: str) -> None:
        self._writes.append(("delete", path, None))

    @property
    def writes(self) -> List[Tuple[str, str, Optional[Dict[str, Any]]]]:
        return list(self._writes)


class DocumentStore:
    """In-memory hierarchical document database scoped by organization.

    Documents live under ``organizations/{org}/{collection}/{doc}``. Listeners
    receive the full ordered collection after every committed change.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._counters: Dict[str, Iterator[int]] = {}
        self._listeners: Dict[str, Dict[int, SnapshotListener]] = {}
        self._listener_ids = itertools.count(1)
        self._lock = RLock()

    def new_id(self, collection_path_: str) -> str:
        collection = collection_path_.rsplit("/", 1)[-1]
        prefix = _ID_PREFIXES.get(collection, collection[:3].upper())
        with self._lock:
            counter = self._counters.setdefault(collection_path_, itertools.count(1))
            while True:
                candidate = f"{prefix}-{next(counter):05d}"
                if candidate not in self._collections.get(collection_path_, {}):
                    return candidate

    async def create(
        self, collection_path_: str, data: Mapping[str, Any], *, document_id: str | None = None
    ) -> Dict[str, Any]:
        with self._lock:
            documents = self._collections.setdefault(collection_path_, {})
            document_id = document_id or self.new_id(collection_path_)
            if document_id in documents:
                raise InvalidInput(f"Document '{document_id}' already exists")
            record = self._stamp(document_id, data, created=True)
            documents[document_id] = record
            result = copy.deepcopy(record)
        self._notify([collection_path_])
        return result

    async def set(self, path: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        collection, document_id = split_path(path)
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            existing = documents.get(document_id)
            record = self._stamp(document_id, data, created=existing is None)
            if existing is not None and "created_at" not in data:
                record["created_at"] = existing.get("created_at")
            documents[document_id] = record
            result = copy.deepcopy(record)
        self._notify([collection])
        return result

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        collection, document_id = split_path(path)
        with self._lock:
            record = self._collections.get(collection, {}).get(document_id)
            return copy.deepcopy(record) if record is not None else None

    async def update(self, path: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        collection, document_id = split_path(path)
        with self._lock:
            record = self._collections.get(collection, {}).get(document_id)
            if record is None:
                raise NotFound(f"Document '{path}' not found")
            record.update(copy.deepcopy(dict(fields)))
            record["updated_at"] = _utc_now()
            result = copy.deepcopy(record)
        self._notify([collection])
        return result

    async def delete(self, path: str) -> bool:
        collection, document_id = split_path(path)
        with self._lock:
            removed = self._collections.get(collection, {}).pop(document_id, None)
        if removed is not None:
            self._notify([collection])
        return removed is not None

    async def list(
        self, collection_path_: str, *, where: Mapping[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        with self._lock:
            return self._snapshot(collection_path_, where)

    async def locate(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Find a document by id in any organization's ``collection``."""

        with self._lock:
            for path, documents in self._collections.items():
                if path.rsplit("/", 1)[-1] == collection and document_id in documents:
                    return copy.deepcopy(documents[document_id])
        return None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Stage writes and apply them all at once, or none of them.

        Any exception raised inside the ``async with`` block discards the
        staged writes. Updating a document that does not exist at commit
        time aborts the whole transaction with :class:`TransactionAborted`.
        """

        txn = Transaction(self)
        yield txn
        touched = self._commit(txn)
        self._notify(touched)

    def _commit(self, txn: Transaction) -> List[str]:
        with self._lock:
            staged = copy.deepcopy(self._collections)
            touched: List[str] = []
            for operation, path, payload in txn.writes:
                collection, document_id = split_path(path)
                documents = staged.setdefault(collection, {})
                if operation == "update":
                    record = documents.get(document_id)
                    if record is None:
                        logger.warning("Aborting transaction, '%s' does not exist", path)
                        raise TransactionAborted(f"Document '{path}' not found; no changes were applied")
                    record.update(payload or {})
                    record["updated_at"] = _utc_now()
                elif operation == "set":
                    existing = documents.get(document_id)
                    record = self._stamp(document_id, payload or {}, created=existing is None)
                    if existing is not None and "created_at" not in (payload or {}):
                        record["created_at"] = existing.get("created_at")
                    documents[document_id] = record
                else:
                    documents.pop(document_id, None)
                if collection not in touched:
                    touched.append(collection)
            self._collections = staged
            return touched

    def listen(self, collection_path_: str, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` and deliver the current snapshot immediately."""

        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners.setdefault(collection_path_, {})[listener_id] = listener
            snapshot = self._snapshot(collection_path_, None)
        self._deliver(collection_path_, listener, snapshot)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(collection_path_)
                if listeners is not None:
                    listeners.pop(listener_id, None)
                    if not listeners:
                        self._listeners.pop(collection_path_, None)

        return unsubscribe

    def listener_count(self, collection_path_: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection_path_, {}))

    def _snapshot(self, collection_path_: str, where: Mapping[str, Any] | None) -> Snapshot:
        documents = self._collections.get(collection_path_, {})
        rows = []
        for record in documents.values():
            if where and any(record.get(key) != value for key, value in where.items()):
                continue
            rows.append(copy.deepcopy(record))
        return rows

    def _notify(self, collections: List[str]) -> None:
        for collection in collections:
            with self._lock:
                listeners = list(self._listeners.get(collection, {}).values())
                if not listeners:
                    continue
                snapshot = self._snapshot(collection, None)
            for listener in listeners:
                self._deliver(collection, listener, copy.deepcopy(snapshot))

    @staticmethod
    def _deliver(collection: str, listener: SnapshotListener, snapshot: Snapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Snapshot listener for %s failed", collection)

    @staticmethod
    def _stamp(document_id: str, data: Mapping[str, Any], *, created: bool) -> Dict[str, Any]:
        record = copy.deepcopy(dict(data))
        record["id"] = document_id
        now = _utc_now()
        if created:
            record.setdefault("created_at", now)
        record["updated_at"] = now
        return record


_document_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore()
    return _document_store


def reset_document_store() -> None:
    global _document_store
    _document_store = None
