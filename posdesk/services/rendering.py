"""Printable documents: template selection and the data handed to templates.

Templates only ever see flat, string valued bags. Amounts are formatted with
the currency precision and dates are ISO ``YYYY-MM-DD``; the ``items`` and
``payments`` lists hold mappings of strings as well.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from posdesk.config import Settings, get_settings
from posdesk.schemas.documents import Invoice, Quote, Receipt, SalesDocument
from posdesk.schemas.settings import StoreProfile
from posdesk.schemas.templates import Template, TemplateCreateRequest
from posdesk.services.default_templates import (
    BUILT_IN_BY_ID,
    BUILT_IN_TEMPLATES,
    LEGACY_TEMPLATE_IDS,
)
from posdesk.services.exceptions import InvalidInput, NotFound
from posdesk.services.payments import balance_summary
from posdesk.services.store import (
    DocumentStore,
    collection_path,
    document_path,
    get_document_store,
)
from posdesk.services.templates import compile_template, render_template
from posdesk.services.totals import format_amount, price_breakdown
from posdesk.services.zatca import qr_code_data_uri, zatca_qr_payload

logger = logging.getLogger(__name__)

TEMPLATE_COLLECTIONS = {
    "receipt": "receiptTemplates",
    "invoice": "invoiceTemplates",
    "quote": "quoteTemplates",
}


def _collection(category: str) -> str:
    try:
        return TEMPLATE_COLLECTIONS[category]
    except KeyError:
        raise InvalidInput(f"Unknown template category '{category}'") from None


def format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else ""


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _company_fields(profile: StoreProfile) -> Dict[str, str]:
    return {
        "companyName": profile.name,
        "companyNameAr": profile.name_ar or profile.name,
        "companyAddress": profile.address,
        "companyEmail": profile.email,
        "companyPhone": profile.phone,
        "companyVat": profile.vat_number,
        "companyLogo": profile.logo_url,
        "companyStamp": profile.stamp_url,
        "customHeader": profile.custom_header or "",
        "customFooter": profile.custom_footer or "",
    }


def _totals_fields(document: SalesDocument, places: int) -> Dict[str, str]:
    return {
        "subtotal": format_amount(document.subtotal, places),
        "taxRate": format_amount(document.tax_rate, places),
        "taxAmount": format_amount(document.tax_amount, places),
        "vatAmount": format_amount(document.tax_amount, places),
        "total": format_amount(document.total, places),
        "taxInclusive": "true" if document.tax_inclusive else "",
    }


def _item_rows(document: SalesDocument, places: int) -> List[Dict[str, str]]:
    rows = []
    for item in document.items:
        unit = price_breakdown(item.unit_price, document.tax_rate, document.tax_inclusive, places=places)
        rows.append(
            {
                "name": item.name,
                "description": _text(item.description),
                "quantity": str(item.quantity),
                "unitPrice": format_amount(item.unit_price, places),
                "unitBasePrice": format_amount(unit.base_price, places),
                "unitVat": format_amount(unit.vat_amount, places),
                "total": format_amount(item.total, places),
                "kind": item.kind,
            }
        )
    return rows


def _payment_rows(payments: Iterable[Any], places: int) -> List[Dict[str, str]]:
    rows = []
    for payment in payments:
        method = payment["method"] if isinstance(payment, dict) else payment.method
        amount = payment["amount"] if isinstance(payment, dict) else payment.amount
        rows.append({"paymentType": str(method), "amount": format_amount(amount, places)})
    return rows


def invoice_template_data(
    invoice: Invoice,
    profile: StoreProfile,
    *,
    payments: Iterable[Any] = (),
    currency: str = "SAR",
    places: int = 2,
) -> Dict[str, Any]:
    payments = list(payments)
    balance = balance_summary(invoice.total, payments, places=places)
    data: Dict[str, Any] = {
        **_company_fields(profile),
        "invoiceId": invoice.id,
        "invoiceType": invoice.invoice_type,
        "invoiceDate": format_date(invoice.created_at),
        "dueDate": format_date(invoice.due_date),
        "status": invoice.status,
        "clientName": invoice.client_name,
        "clientEmail": _text(invoice.client_email),
        "clientAddress": _text(invoice.client_address),
        "clientVat": _text(invoice.client_vat),
        "notes": _text(invoice.notes),
        "currency": currency,
        "items": _item_rows(invoice, places),
        "payments": _payment_rows(payments, places),
        "hasPayments": "true" if payments else "",
        "amountPaid": format_amount(balance.paid, places),
        "balanceDue": format_amount(balance.remaining, places),
        "overpaid": format_amount(balance.overpaid, places),
        "isOverpaid": "true" if balance.overpaid > 0 else "",
        "includeQR": "true" if invoice.include_qr else "",
        "qrCodeData": "",
        "qrCodeUrl": "",
        **_totals_fields(invoice, places),
    }
    if invoice.include_qr:
        data["qrCodeData"] = zatca_qr_payload(
            profile.name,
            profile.vat_number,
            invoice.created_at,
            data["total"],
            data["taxAmount"],
        )
        data["qrCodeUrl"] = qr_code_data_uri(data["qrCodeData"])
    return data


def quote_template_data(
    quote: Quote, profile: StoreProfile, *, currency: str = "SAR", places: int = 2
) -> Dict[str, Any]:
    return {
        **_company_fields(profile),
        "quoteId": quote.id,
        "quoteDate": format_date(quote.created_at),
        "validUntil": format_date(quote.valid_until),
        "status": quote.status,
        "clientName": quote.client_name,
        "clientEmail": _text(quote.client_email),
        "clientAddress": _text(quote.client_address),
        "notes": _text(quote.notes),
        "currency": currency,
        "items": _item_rows(quote, places),
        **_totals_fields(quote, places),
    }


def receipt_template_data(
    receipt: Receipt,
    profile: StoreProfile,
    *,
    currency: str = "SAR",
    places: int = 2,
    include_qr: bool = False,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        **_company_fields(profile),
        "receiptId": receipt.id,
        "orderNumber": receipt.order_id,
        "orderType": _text(receipt.order_type),
        "orderDate": format_date(receipt.created_at),
        "tableName": _text(receipt.table_name),
        "customerName": _text(receipt.customer_name),
        "currency": currency,
        "items": _item_rows(receipt, places),
        "totalQty": str(sum(item.quantity for item in receipt.items)),
        "payments": _payment_rows(receipt.payments, places),
        "hasPayments": "true" if receipt.payments else "",
        "amountPaid": format_amount(receipt.amount_paid, places),
        "includeQR": "true" if include_qr else "",
        "qrCodeData": "",
        "qrCodeUrl": "",
        **_totals_fields(receipt, places),
    }
    if include_qr:
        data["qrCodeData"] = zatca_qr_payload(
            profile.name, profile.vat_number, receipt.created_at, data["total"], data["taxAmount"]
        )
        data["qrCodeUrl"] = qr_code_data_uri(data["qrCodeData"])
    return data


def plain_text_invoice(invoice: Invoice, profile: StoreProfile, *, currency: str = "SAR", places: int = 2) -> str:
    """Text summary attached to emails when no template was chosen."""

    lines = [
        f"INVOICE {invoice.id}",
        f"From: {profile.name or 'Our store'}",
        f"To: {invoice.client_name}",
        f"Date: {format_date(invoice.created_at)}",
        f"Due: {format_date(invoice.due_date)}",
        "",
        "Items:",
    ]
    for item in invoice.items:
        lines.append(
            f"- {item.name} x{item.quantity} @ {format_amount(item.unit_price, places)}"
            f" = {format_amount(item.total, places)}"
        )
    lines.extend(
        [
            "",
            f"Subtotal: {format_amount(invoice.subtotal, places)} {currency}",
            f"VAT ({format_amount(invoice.tax_rate, places)}%): {format_amount(invoice.tax_amount, places)} {currency}",
            f"Total: {format_amount(invoice.total, places)} {currency}",
        ]
    )
    if invoice.notes:
        lines.extend(["", invoice.notes])
    return "\n".join(lines) + "\n"


class TemplateService:
    """Stored and built-in templates, plus rendering of stored documents."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._store = store or get_document_store()
        self._settings = settings or get_settings()

    async def create(self, organization_id: str, request: TemplateCreateRequest) -> Template:
        path = collection_path(organization_id, _collection(request.category))
        compile_template(request.content)
        record = await self._store.create(
            path,
            {
                "organization_id": organization_id,
                "category": request.category,
                "type": request.type,
                "name": request.name,
                "content": request.content,
                "is_default": False,
                "built_in": False,
            },
        )
        template = Template.model_validate(record)
        if request.is_default:
            template = await self.set_default(organization_id, request.category, template.id)
        logger.info("Stored %s template %s for %s", request.category, template.id, organization_id)
        return template

    async def list(self, organization_id: str, category: str) -> List[Template]:
        stored = await self._store.list(collection_path(organization_id, _collection(category)))
        templates = [Template.model_validate(record) for record in stored]
        overridden = {t.type for t in templates if t.is_default}
        for built_in in BUILT_IN_TEMPLATES:
            if built_in.category != category:
                continue
            templates.append(
                built_in.model_copy(update={"is_default": built_in.type not in overridden})
            )
        return templates

    async def get(self, organization_id: str, category: str, template_id: str) -> Template:
        template_id = LEGACY_TEMPLATE_IDS.get(template_id, template_id)
        built_in = BUILT_IN_BY_ID.get(template_id)
        if built_in is not None and built_in.category == category:
            return built_in
        record = await self._store.get(
            document_path(organization_id, _collection(category), template_id)
        )
        if record is None:
            raise NotFound(f"Template '{template_id}' not found")
        return Template.model_validate(record)

    async def delete(self, organization_id: str, category: str, template_id: str) -> bool:
        if template_id in BUILT_IN_BY_ID:
            raise InvalidInput("Built-in templates cannot be deleted")
        return await self._store.delete(
            document_path(organization_id, _collection(category), template_id)
        )

    async def set_default(self, organization_id: str, category: str, template_id: str) -> Template:
        """Make a stored template the default of its category and type."""

        template = await self.get(organization_id, category, template_id)
        if template.built_in:
            raise InvalidInput("Built-in templates are defaults unless overridden")
        path = collection_path(organization_id, _collection(category))
        siblings = await self._store.list(path, where={"type": template.type, "is_default": True})
        async with self._store.transaction() as txn:
            for sibling in siblings:
                if sibling["id"] != template.id:
                    txn.update(f"{path}/{sibling['id']}", {"is_default": False})
            txn.update(f"{path}/{template.id}", {"is_default": True})
        return await self.get(organization_id, category, template.id)

    async def resolve(
        self, organization_id: str, category: str, template_id: str | None = None
    ) -> Template:
        """Pick the template to print with.

        An explicit id wins when it exists; otherwise the organization's
        default for the category, then the first built-in of the category.
        """

        if template_id:
            try:
                return await self.get(organization_id, category, template_id)
            except NotFound:
                logger.warning("Template %s not found, using default", template_id)
        stored = await self._store.list(
            collection_path(organization_id, _collection(category)), where={"is_default": True}
        )
        if stored:
            return Template.model_validate(stored[0])
        for built_in in BUILT_IN_TEMPLATES:
            if built_in.category == category:
                return built_in
        raise NotFound(f"No template available for '{category}'")

    async def _profile(self, organization_id: str) -> StoreProfile:
        record = await self._store.get(document_path(organization_id, "settings", "store"))
        return StoreProfile.model_validate(record) if record else StoreProfile()

    async def _payments(self, organization_id: str, document_id: str) -> List[Dict[str, Any]]:
        return await self._store.list(
            collection_path(organization_id, "payments"), where={"document_id": document_id}
        )

    async def document_data(self, organization_id: str, document: SalesDocument) -> Dict[str, Any]:
        profile = await self._profile(organization_id)
        currency = self._settings.currency
        places = self._settings.currency_precision
        if isinstance(document, Invoice):
            payments = await self._payments(organization_id, document.id)
            return invoice_template_data(
                document, profile, payments=payments, currency=currency, places=places
            )
        if isinstance(document, Quote):
            return quote_template_data(document, profile, currency=currency, places=places)
        if isinstance(document, Receipt):
            return receipt_template_data(
                document,
                profile,
                currency=currency,
                places=places,
                include_qr=bool(profile.vat_number),
            )
        raise InvalidInput(f"Documents of kind '{document.kind}' are not printable")

    async def render_document(
        self, organization_id: str, document: SalesDocument, template_id: str | None = None
    ) -> str:
        template = await self.resolve(organization_id, document.kind, template_id)
        data = await self.document_data(organization_id, document)
        logger.info("Rendering %s %s with template %s", document.kind, document.id, template.id)
        return render_template(template.content, data)
