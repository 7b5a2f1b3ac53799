import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from posdesk.schemas.documents import (
    InvoiceCreateRequest,
    ItemsUpdateRequest,
    LineItemInput,
    OrderCreateRequest,
    QuoteCreateRequest,
    TaxConfiguration,
)
from posdesk.schemas.payments import PaymentCreateRequest
from posdesk.schemas.settings import VatSettings
from posdesk.services.documents import DocumentService
from posdesk.services.exceptions import (
    DocumentLocked,
    InvalidInput,
    InvalidTransition,
    MissingOrganization,
    NotFound,
)
from posdesk.services.payments import PaymentService
from posdesk.services.settings import SettingsService
from posdesk.services.store import get_document_store

ORG = "org-docs"


def _items() -> list:
    return [
        LineItemInput(name="Design", kind="service", quantity=2, unit_price=Decimal("150")),
        LineItemInput(name="Printed flyers", quantity=100, unit_price=Decimal("0.45")),
    ]


def _quote(service: DocumentService) -> str:
    quote = asyncio.run(
        service.create_quote(
            ORG,
            QuoteCreateRequest(
                client_name="Nour Trading",
                client_email="buyer@nour.example",
                items=_items(),
                tax=TaxConfiguration(rate=Decimal("15")),
            ),
        )
    )
    return quote.id


def test_create_quote_derives_totals() -> None:
    service = DocumentService()
    quote = asyncio.run(service.get(ORG, "quote", _quote(service)))

    assert quote.status == "draft"
    assert quote.id.startswith("QUO-")
    assert [item.id for item in quote.items] == ["line-1", "line-2"]
    assert quote.items[1].total == Decimal("45.00")
    assert quote.subtotal == Decimal("345.00")
    assert quote.tax_amount == Decimal("51.75")
    assert quote.total == Decimal("396.75")


def test_create_uses_organization_vat_settings_by_default() -> None:
    asyncio.run(SettingsService().set_vat(ORG, VatSettings(rate=Decimal("15"), inclusive=True)))
    service = DocumentService()

    order = asyncio.run(
        service.create_order(
            ORG,
            OrderCreateRequest(items=[LineItemInput(name="Latte", quantity=1, unit_price=Decimal("23"))]),
        )
    )

    assert order.tax_inclusive is True
    assert order.tax_amount == Decimal("3.00")
    assert order.total == Decimal("23.00")


def test_create_without_organization_is_rejected() -> None:
    with pytest.raises(MissingOrganization):
        asyncio.run(DocumentService().create_quote("", QuoteCreateRequest(client_name="X")))
    assert asyncio.run(get_document_store().locate("quotes", "QUO-00001")) is None


def test_invoice_default_due_date() -> None:
    before = datetime.now(timezone.utc)
    invoice = asyncio.run(
        DocumentService().create_invoice(ORG, InvoiceCreateRequest(client_name="Acme", items=_items()))
    )

    assert invoice.due_date - before >= timedelta(days=30)
    assert invoice.due_date - before < timedelta(days=30, minutes=1)


def test_convert_quote_to_invoice() -> None:
    service = DocumentService()
    quote_id = _quote(service)
    asyncio.run(service.transition(ORG, "quote", quote_id, "sent"))
    asyncio.run(service.transition(ORG, "quote", quote_id, "accepted"))
    now = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)

    invoice = asyncio.run(service.convert_quote_to_invoice(ORG, quote_id, now=now))

    quote = asyncio.run(service.get(ORG, "quote", quote_id))
    assert quote.status == "converted"
    assert quote.invoice_id == invoice.id
    assert invoice.status == "draft"
    assert invoice.quote_id == quote_id
    assert invoice.client_vat is None
    assert invoice.client_name == "Nour Trading"
    assert invoice.due_date == now + timedelta(days=30)
    assert invoice.items == quote.items
    assert invoice.total == quote.total


def test_converted_quote_cannot_be_converted_again() -> None:
    service = DocumentService()
    quote_id = _quote(service)
    asyncio.run(service.convert_quote_to_invoice(ORG, quote_id))

    with pytest.raises(InvalidTransition):
        asyncio.run(service.convert_quote_to_invoice(ORG, quote_id))
    assert len(asyncio.run(service.list(ORG, "invoice"))) == 1


def test_plain_status_change_cannot_convert_a_quote() -> None:
    service = DocumentService()
    quote_id = _quote(service)

    with pytest.raises(InvalidInput):
        asyncio.run(service.transition(ORG, "quote", quote_id, "converted"))


def test_update_items_recomputes_totals() -> None:
    service = DocumentService()
    quote_id = _quote(service)

    quote = asyncio.run(
        service.update_items(
            ORG,
            "quote",
            quote_id,
            ItemsUpdateRequest(items=[LineItemInput(name="Design", quantity=1, unit_price=Decimal("100"))]),
        )
    )

    assert quote.subtotal == Decimal("100.00")
    assert quote.tax_amount == Decimal("15.00")
    assert quote.total == Decimal("115.00")


def test_items_of_sent_invoice_are_locked() -> None:
    service = DocumentService()
    invoice = asyncio.run(service.create_invoice(ORG, InvoiceCreateRequest(client_name="Acme", items=_items())))
    asyncio.run(service.transition(ORG, "invoice", invoice.id, "sent"))

    with pytest.raises(DocumentLocked):
        asyncio.run(service.update_items(ORG, "invoice", invoice.id, ItemsUpdateRequest(items=_items())))


def test_unknown_document_raises_not_found() -> None:
    with pytest.raises(NotFound):
        asyncio.run(DocumentService().get(ORG, "invoice", "INV-404"))


def test_receipt_is_issued_once_for_completed_order() -> None:
    service = DocumentService()
    order = asyncio.run(
        service.create_order(
            ORG,
            OrderCreateRequest(
                customer_name="Walk-in",
                items=[LineItemInput(name="Shawarma", quantity=2, unit_price=Decimal("12"))],
            ),
        )
    )
    asyncio.run(
        PaymentService().record(
            ORG,
            PaymentCreateRequest(document_id=order.id, document_kind="order", amount=Decimal("24"), method="cash"),
        )
    )

    with pytest.raises(InvalidInput):
        asyncio.run(service.issue_receipt(ORG, order.id))

    asyncio.run(service.transition(ORG, "order", order.id, "completed"))
    receipt = asyncio.run(service.issue_receipt(ORG, order.id))
    again = asyncio.run(service.issue_receipt(ORG, order.id))

    assert receipt.id == again.id
    assert receipt.order_id == order.id
    assert receipt.amount_paid == Decimal("24.00")
    assert receipt.payments[0].method == "cash"


def test_mark_overdue_only_touches_late_unpaid_invoices() -> None:
    service = DocumentService()
    late = asyncio.run(
        service.create_invoice(
            ORG,
            InvoiceCreateRequest(
                client_name="Late",
                items=_items(),
                due_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            ),
        )
    )
    draft = asyncio.run(
        service.create_invoice(
            ORG,
            InvoiceCreateRequest(
                client_name="Draft",
                items=_items(),
                due_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            ),
        )
    )
    asyncio.run(service.transition(ORG, "invoice", late.id, "sent"))

    changed = asyncio.run(service.mark_overdue(ORG, now=datetime(2024, 2, 1, tzinfo=timezone.utc)))

    assert [invoice.id for invoice in changed] == [late.id]
    assert asyncio.run(service.get(ORG, "invoice", draft.id)).status == "draft"


def test_mark_expired_only_touches_stale_open_quotes() -> None:
    service = DocumentService()
    cutoff = datetime(2024, 3, 1, tzinfo=timezone.utc)

    def quote(name: str, valid_until: datetime | None) -> str:
        created = asyncio.run(
            service.create_quote(
                ORG, QuoteCreateRequest(client_name=name, items=_items(), valid_until=valid_until)
            )
        )
        return created.id

    stale_draft = quote("Stale draft", datetime(2024, 2, 1, tzinfo=timezone.utc))
    stale_sent = quote("Stale sent", datetime(2024, 2, 15))
    fresh = quote("Fresh", datetime(2024, 4, 1, tzinfo=timezone.utc))
    open_ended = quote("Open ended", None)
    accepted = quote("Accepted", datetime(2024, 1, 1, tzinfo=timezone.utc))
    asyncio.run(service.transition(ORG, "quote", stale_sent, "sent"))
    asyncio.run(service.transition(ORG, "quote", accepted, "sent"))
    asyncio.run(service.transition(ORG, "quote", accepted, "accepted"))

    changed = asyncio.run(service.mark_expired(ORG, now=cutoff))

    assert sorted(q.id for q in changed) == sorted([stale_draft, stale_sent])
    assert all(q.status == "expired" for q in changed)
    for quote_id, status in ((fresh, "draft"), (open_ended, "draft"), (accepted, "accepted")):
        assert asyncio.run(service.get(ORG, "quote", quote_id)).status == status


def test_expired_quote_cannot_be_converted() -> None:
    service = DocumentService()
    quote_id = _quote(service)
    asyncio.run(service.transition(ORG, "quote", quote_id, "expired"))

    with pytest.raises(InvalidTransition):
        asyncio.run(service.convert_quote_to_invoice(ORG, quote_id))
