import asyncio
from decimal import Decimal

import pytest

from posdesk.schemas.documents import LineItemInput, OrderCreateRequest
from posdesk.schemas.tables import TableCreateRequest
from posdesk.services.documents import DocumentService
from posdesk.services.exceptions import InvalidInput, InvalidTransition, TransactionAborted
from posdesk.services.store import document_path, get_document_store
from posdesk.services.tables import TableService

ORG = "org-tables"


def _setup():
    tables = TableService()
    table_a = asyncio.run(tables.create(ORG, TableCreateRequest(name="A", capacity=4)))
    table_b = asyncio.run(tables.create(ORG, TableCreateRequest(name="B", capacity=2)))
    order = asyncio.run(
        DocumentService().create_order(
            ORG,
            OrderCreateRequest(
                order_type="dine-in",
                items=[LineItemInput(name="Mezze", quantity=1, unit_price=Decimal("30"))],
            ),
        )
    )
    asyncio.run(tables.assign_order(ORG, table_a.id, order.id))
    return tables, table_a, table_b, order


def test_assign_marks_table_occupied() -> None:
    tables, table_a, _, order = _setup()

    assert asyncio.run(tables.get(ORG, table_a.id)).status == "occupied"
    stored = asyncio.run(DocumentService().get(ORG, "order", order.id))
    assert stored.table_id == table_a.id
    assert stored.table_name == "A"


def test_cannot_assign_to_occupied_table() -> None:
    tables, table_a, _, order = _setup()

    with pytest.raises(InvalidInput):
        asyncio.run(tables.assign_order(ORG, table_a.id, order.id))


def test_move_order_between_tables() -> None:
    tables, table_a, table_b, order = _setup()

    source, target = asyncio.run(tables.move_order(ORG, order.id, table_a.id, table_b.id))

    assert source.status == "available"
    assert target.status == "occupied"
    stored = asyncio.run(DocumentService().get(ORG, "order", order.id))
    assert stored.table_id == table_b.id
    assert stored.table_name == "B"


def test_move_to_same_table_is_rejected() -> None:
    tables, table_a, _, order = _setup()

    with pytest.raises(InvalidInput):
        asyncio.run(tables.move_order(ORG, order.id, table_a.id, table_a.id))


def test_move_to_table_in_maintenance_is_rejected() -> None:
    tables, table_a, table_b, order = _setup()
    asyncio.run(tables.set_status(ORG, table_b.id, "maintenance"))

    with pytest.raises(InvalidInput):
        asyncio.run(tables.move_order(ORG, order.id, table_a.id, table_b.id))


def test_aborted_move_leaves_everything_unchanged() -> None:
    tables, table_a, table_b, order = _setup()
    store = get_document_store()
    # The source table disappears between the reads and the commit.
    asyncio.run(store.delete(document_path(ORG, "tables", table_a.id)))

    with pytest.raises(TransactionAborted):
        asyncio.run(tables.move_order(ORG, order.id, table_a.id, table_b.id))

    assert asyncio.run(tables.get(ORG, table_b.id)).status == "available"
    stored = asyncio.run(DocumentService().get(ORG, "order", order.id))
    assert stored.table_id == table_a.id


def test_release_frees_table_and_clears_order() -> None:
    tables, table_a, _, order = _setup()

    table = asyncio.run(tables.release(ORG, table_a.id, order.id))

    assert table.status == "available"
    stored = asyncio.run(DocumentService().get(ORG, "order", order.id))
    assert stored.table_id is None


def test_maintenance_table_must_become_available_first() -> None:
    tables, _, table_b, _ = _setup()
    asyncio.run(tables.set_status(ORG, table_b.id, "maintenance"))

    with pytest.raises(InvalidTransition):
        asyncio.run(tables.set_status(ORG, table_b.id, "occupied"))
    assert asyncio.run(tables.set_status(ORG, table_b.id, "available")).status == "available"
