import asyncio
import base64
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from posdesk.schemas.documents import (
    InvoiceCreateRequest,
    LineItemInput,
    OrderCreateRequest,
    QuoteCreateRequest,
    TaxConfiguration,
)
from posdesk.schemas.payments import PaymentCreateRequest
from posdesk.schemas.settings import StoreProfile
from posdesk.schemas.templates import TemplateCreateRequest
from posdesk.services.default_templates import BUILT_IN_TEMPLATES
from posdesk.services.documents import DocumentService
from posdesk.services.exceptions import InvalidInput, NotFound
from posdesk.services.payments import PaymentService
from posdesk.services.rendering import (
    TemplateService,
    invoice_template_data,
    plain_text_invoice,
    quote_template_data,
)
from posdesk.services.settings import SettingsService
from posdesk.services.templates import render_template
from posdesk.services.zatca import encode_tlv, qr_code_png, zatca_qr_payload

ORG = "org-print"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

PROFILE = StoreProfile(
    name="Dar Cafe",
    name_ar="دار كافيه",
    address="King Fahd Rd, Riyadh",
    vat_number="300000000000003",
)


def _decode_tlv(payload: str) -> list:
    raw = base64.b64decode(payload)
    fields = []
    index = 0
    while index < len(raw):
        tag, length = raw[index], raw[index + 1]
        fields.append((tag, raw[index + 2:index + 2 + length].decode("utf-8")))
        index += 2 + length
    return fields


def _invoice(include_qr: bool = False):
    return asyncio.run(
        DocumentService().create_invoice(
            ORG,
            InvoiceCreateRequest(
                client_name="Acme",
                client_vat="311111111100003",
                items=[
                    LineItemInput(name="Catering", quantity=3, unit_price=Decimal("100")),
                    LineItemInput(name="Delivery", kind="service", quantity=1, unit_price=Decimal("25.5")),
                ],
                tax=TaxConfiguration(rate=Decimal("15")),
                include_qr=include_qr,
            ),
        )
    )


def test_invoice_data_is_flat_strings() -> None:
    invoice = _invoice()
    payments = [{"method": "cash", "amount": Decimal("100")}]

    data = invoice_template_data(invoice, PROFILE, payments=payments)

    assert data["companyName"] == "Dar Cafe"
    assert data["invoiceId"] == invoice.id
    assert data["invoiceDate"] == invoice.created_at.date().isoformat()
    assert data["subtotal"] == "325.50"
    assert data["taxRate"] == "15.00"
    assert data["taxAmount"] == "48.83"
    assert data["total"] == "374.33"
    assert data["amountPaid"] == "100.00"
    assert data["balanceDue"] == "274.33"
    assert data["items"][1] == {
        "name": "Delivery",
        "description": "",
        "quantity": "1",
        "unitPrice": "25.50",
        "unitBasePrice": "25.50",
        "unitVat": "3.83",
        "total": "25.50",
        "kind": "service",
    }
    assert data["payments"] == [{"paymentType": "cash", "amount": "100.00"}]
    assert data["qrCodeData"] == ""
    assert data["qrCodeUrl"] == ""
    assert data["overpaid"] == "0.00"


def test_invoice_data_carries_zatca_qr_when_requested() -> None:
    invoice = _invoice(include_qr=True)

    data = invoice_template_data(invoice, PROFILE)

    fields = dict(_decode_tlv(data["qrCodeData"]))
    assert fields[1] == "Dar Cafe"
    assert fields[2] == "300000000000003"
    assert fields[4] == data["total"]
    assert fields[5] == data["taxAmount"]
    prefix = "data:image/png;base64,"
    assert data["qrCodeUrl"].startswith(prefix)
    assert base64.b64decode(data["qrCodeUrl"][len(prefix):]).startswith(PNG_SIGNATURE)


def test_quote_data() -> None:
    quote = asyncio.run(
        DocumentService().create_quote(
            ORG,
            QuoteCreateRequest(
                client_name="Nour",
                items=[LineItemInput(name="Design", quantity=1, unit_price=Decimal("99.999"))],
            ),
        )
    )

    data = quote_template_data(quote, PROFILE, currency="USD")

    assert data["quoteId"] == quote.id
    assert data["validUntil"] == ""
    assert data["items"][0]["unitPrice"] == "100.00"
    assert data["currency"] == "USD"


def test_zatca_tlv_layout() -> None:
    assert encode_tlv(1, "Bob") == b"\x01\x03Bob"

    payload = zatca_qr_payload(
        "Bobs Records",
        "310122393500003",
        datetime(2022, 4, 25, 15, 30, tzinfo=timezone.utc),
        "1000.00",
        "150.00",
    )

    assert _decode_tlv(payload) == [
        (1, "Bobs Records"),
        (2, "310122393500003"),
        (3, "2022-04-25T15:30:00Z"),
        (4, "1000.00"),
        (5, "150.00"),
    ]


def test_zatca_keeps_empty_tags() -> None:
    payload = zatca_qr_payload("Kiosk", "", datetime(2024, 1, 1, tzinfo=timezone.utc), "10.00", "0.00")

    assert [tag for tag, _ in _decode_tlv(payload)] == [1, 2, 3, 4, 5]
    assert dict(_decode_tlv(payload))[2] == ""


def test_qr_code_png_is_an_image() -> None:
    assert qr_code_png("hello").startswith(PNG_SIGNATURE)


def test_zatca_rejects_oversized_fields() -> None:
    with pytest.raises(InvalidInput):
        encode_tlv(1, "x" * 256)


def test_plain_text_invoice_summary() -> None:
    invoice = _invoice()

    text = plain_text_invoice(invoice, PROFILE)

    assert text.startswith(f"INVOICE {invoice.id}\n")
    assert "- Catering x3 @ 100.00 = 300.00" in text
    assert "Total: 374.33 SAR" in text


@pytest.mark.parametrize("template", BUILT_IN_TEMPLATES, ids=lambda t: t.id)
def test_built_in_templates_parse(template) -> None:
    assert render_template(template.content, {}).startswith("<!DOCTYPE html>")


def test_resolve_falls_back_to_built_in() -> None:
    service = TemplateService()

    template = asyncio.run(service.resolve(ORG, "invoice", "does-not-exist"))

    assert template.built_in is True
    assert template.category == "invoice"


def test_legacy_template_ids_resolve() -> None:
    template = asyncio.run(TemplateService().get(ORG, "invoice", "english-invoice"))

    assert template.id == "sales-invoice-english"


def test_custom_default_template_wins() -> None:
    service = TemplateService()
    first = asyncio.run(
        service.create(
            ORG,
            TemplateCreateRequest(category="receipt", type="english_thermal", name="Mine", content="A {{total}}", is_default=True),
        )
    )
    second = asyncio.run(
        service.create(
            ORG,
            TemplateCreateRequest(category="receipt", type="english_thermal", name="Newer", content="B {{total}}", is_default=True),
        )
    )

    assert asyncio.run(service.get(ORG, "receipt", first.id)).is_default is False
    assert asyncio.run(service.resolve(ORG, "receipt")).id == second.id
    listed = asyncio.run(service.list(ORG, "receipt"))
    defaults = [t.id for t in listed if t.is_default]
    assert second.id in defaults
    assert "receipt-thermal-en" not in defaults


def test_built_in_templates_cannot_be_deleted() -> None:
    with pytest.raises(InvalidInput):
        asyncio.run(TemplateService().delete(ORG, "invoice", "sales-invoice-english"))


def test_unknown_template_raises_not_found() -> None:
    with pytest.raises(NotFound):
        asyncio.run(TemplateService().get(ORG, "quote", "QTP-00042"))


def test_render_receipt_for_completed_order() -> None:
    asyncio.run(SettingsService().set_store_profile(ORG, PROFILE))
    documents = DocumentService()
    order = asyncio.run(
        documents.create_order(
            ORG,
            OrderCreateRequest(
                customer_name="Walk-in",
                items=[LineItemInput(name="Flat white", quantity=2, unit_price=Decimal("14"))],
            ),
        )
    )
    asyncio.run(
        PaymentService().record(
            ORG,
            PaymentCreateRequest(document_id=order.id, document_kind="order", amount=Decimal("28"), method="mada"),
        )
    )
    asyncio.run(documents.transition(ORG, "order", order.id, "completed"))
    receipt = asyncio.run(documents.issue_receipt(ORG, order.id))

    html = asyncio.run(TemplateService().render_document(ORG, receipt, "receipt-thermal-en"))

    assert "Dar Cafe" in html
    assert "Flat white" in html
    assert "28.00" in html
    assert "mada" in html
    assert 'src="data:image/png;base64,' in html
    assert "{{" not in html


def test_overpaid_invoice_prints_zero_balance() -> None:
    documents = DocumentService()
    invoice = asyncio.run(
        documents.create_invoice(
            ORG,
            InvoiceCreateRequest(
                client_name="Acme",
                items=[LineItemInput(name="Consulting", quantity=1, unit_price=Decimal("100"))],
                tax=TaxConfiguration(rate=Decimal("0")),
            ),
        )
    )
    asyncio.run(documents.transition(ORG, "invoice", invoice.id, "sent"))
    asyncio.run(
        PaymentService().record(
            ORG,
            PaymentCreateRequest(document_id=invoice.id, amount=Decimal("150"), method="cash"),
        )
    )
    invoice = asyncio.run(documents.get(ORG, "invoice", invoice.id))
    service = TemplateService()

    data = asyncio.run(service.document_data(ORG, invoice))
    html = asyncio.run(service.render_document(ORG, invoice, "sales-invoice-english"))

    assert data["status"] == "paid"
    assert data["amountPaid"] == "150.00"
    assert data["balanceDue"] == "0.00"
    assert data["overpaid"] == "50.00"
    assert "-50.00" not in html
    assert '<th class="amount">0.00</th>' in html
    assert "Overpaid" in html
