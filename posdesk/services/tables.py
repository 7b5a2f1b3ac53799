from __future__ import annotations

import logging
from typing import List

from posdesk.schemas.tables import Table, TableCreateRequest
from posdesk.services.exceptions import InvalidInput, NotFound
from posdesk.services.lifecycle import ensure_transition
from posdesk.services.store import (
    DocumentStore,
    collection_path,
    document_path,
    get_document_store,
)

logger = logging.getLogger(__name__)


class TableService:
    """Dining tables and the order moves between them."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self._store = store or get_document_store()

    async def create(self, organization_id: str, request: TableCreateRequest) -> Table:
        record = await self._store.create(
            collection_path(organization_id, "tables"),
            {
                "organization_id": organization_id,
                "name": request.name.strip(),
                "capacity": request.capacity,
                "status": request.status,
            },
        )
        logger.info("Added table %s (%s)", record["id"], record["name"])
        return Table.model_validate(record)

    async def list(self, organization_id: str) -> List[Table]:
        records = await self._store.list(collection_path(organization_id, "tables"))
        return [Table.model_validate(record) for record in records]

    async def get(self, organization_id: str, table_id: str) -> Table:
        record = await self._store.get(document_path(organization_id, "tables", table_id))
        if record is None:
            raise NotFound(f"Table '{table_id}' not found")
        return Table.model_validate(record)

    async def delete(self, organization_id: str, table_id: str) -> bool:
        return await self._store.delete(document_path(organization_id, "tables", table_id))

    async def set_status(self, organization_id: str, table_id: str, status: str) -> Table:
        table = await self.get(organization_id, table_id)
        if table.status == status:
            return table
        ensure_transition("table", table.status, status)
        record = await self._store.update(
            document_path(organization_id, "tables", table_id), {"status": status}
        )
        return Table.model_validate(record)

    async def _get_order(self, organization_id: str, order_id: str) -> dict:
        order = await self._store.get(document_path(organization_id, "orders", order_id))
        if order is None:
            raise NotFound(f"Order '{order_id}' not found")
        return order

    async def assign_order(self, organization_id: str, table_id: str, order_id: str) -> Table:
        """Seat an order at a table, marking the table occupied."""

        table = await self.get(organization_id, table_id)
        await self._get_order(organization_id, order_id)
        if table.status not in ("available", "reserved"):
            raise InvalidInput(f"Table '{table.name}' is {table.status}")

        async with self._store.transaction() as txn:
            txn.update(
                document_path(organization_id, "orders", order_id),
                {"table_id": table.id, "table_name": table.name},
            )
            txn.update(document_path(organization_id, "tables", table_id), {"status": "occupied"})

        logger.info("Seated order %s at table %s", order_id, table_id)
        return await self.get(organization_id, table_id)

    async def move_order(
        self, organization_id: str, order_id: str, from_table_id: str, to_table_id: str
    ) -> List[Table]:
        """Move an order between tables in one transaction.

        The order's table reference, the source table (released) and the
        target table (occupied) are written together or not at all.
        """

        if from_table_id == to_table_id:
            raise InvalidInput("Source and destination tables are the same")
        target = await self.get(organization_id, to_table_id)
        if target.status == "maintenance":
            raise InvalidInput(f"Table '{target.name}' is under maintenance")
        await self._get_order(organization_id, order_id)

        try:
            async with self._store.transaction() as txn:
                txn.update(
                    document_path(organization_id, "orders", order_id),
                    {"table_id": target.id, "table_name": target.name},
                )
                txn.update(
                    document_path(organization_id, "tables", from_table_id),
                    {"status": "available"},
                )
                txn.update(
                    document_path(organization_id, "tables", to_table_id),
                    {"status": "occupied"},
                )
        except Exception:
            logger.exception("Error moving order %s to table %s", order_id, to_table_id)
            raise

        logger.info("Moved order %s from table %s to %s", order_id, from_table_id, to_table_id)
        return [
            await self.get(organization_id, from_table_id),
            await self.get(organization_id, to_table_id),
        ]

    async def release(self, organization_id: str, table_id: str, order_id: str) -> Table:
        """Free a table and clear the order's table reference atomically."""

        try:
            async with self._store.transaction() as txn:
                txn.update(
                    document_path(organization_id, "tables", table_id),
                    {"status": "available"},
                )
                txn.update(
                    document_path(organization_id, "orders", order_id),
                    {"table_id": None, "table_name": None},
                )
        except Exception:
            logger.exception("Error releasing table %s", table_id)
            raise

        logger.info("Released table %s from order %s", table_id, order_id)
        return await self.get(organization_id, table_id)
