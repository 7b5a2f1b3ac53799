from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from posdesk.config import Settings, get_settings
from posdesk.schemas.documents import (
    DocumentTotals,
    Invoice,
    InvoiceCreateRequest,
    ItemsUpdateRequest,
    LineItem,
    LineItemInput,
    Order,
    OrderCreateRequest,
    Quote,
    QuoteCreateRequest,
    Receipt,
    ReceiptPayment,
    SalesDocument,
    TaxConfiguration,
)
from posdesk.schemas.settings import VatSettings
from posdesk.services.exceptions import InvalidInput, NotFound
from posdesk.services.lifecycle import ensure_editable, ensure_transition
from posdesk.services.payments import total_paid
from posdesk.services.store import (
    DocumentStore,
    collection_path,
    document_path,
    get_document_store,
)
from posdesk.services.totals import compute_line_total, summarize

logger = logging.getLogger(__name__)

DOCUMENT_TYPES: Dict[str, Tuple[str, Type[SalesDocument]]] = {
    "quote": ("quotes", Quote),
    "invoice": ("invoices", Invoice),
    "order": ("orders", Order),
    "receipt": ("receipts", Receipt),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_line_items(items: Iterable[LineItemInput], *, places: int = 2) -> List[LineItem]:
    """Attach ids and derived totals to submitted lines."""

    lines: List[LineItem] = []
    for index, item in enumerate(items, start=1):
        data = item.model_dump(exclude={"id"})
        lines.append(
            LineItem(
                **data,
                id=item.id or f"line-{index}",
                total=compute_line_total(item.quantity, item.unit_price, places=places),
            )
        )
    return lines


def _totals_fields(totals: DocumentTotals) -> Dict[str, Any]:
    return {
        "subtotal": totals.subtotal,
        "tax_rate": totals.tax_rate,
        "tax_inclusive": totals.inclusive,
        "tax_amount": totals.tax_amount,
        "total": totals.total,
    }


def _document_type(kind: str) -> Tuple[str, Type[SalesDocument]]:
    try:
        return DOCUMENT_TYPES[kind]
    except KeyError:
        raise InvalidInput(f"Unknown document kind '{kind}'") from None


class DocumentService:
    """Create and evolve quotes, invoices, orders and receipts.

    Totals are recomputed from the line items on every write; callers never
    send a subtotal or total of their own.
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._store = store or get_document_store()
        self._settings = settings or get_settings()

    @property
    def _places(self) -> int:
        return self._settings.currency_precision

    async def default_tax(self, organization_id: str) -> TaxConfiguration:
        record = await self._store.get(document_path(organization_id, "settings", "vat"))
        if not record:
            return TaxConfiguration()
        vat = VatSettings.model_validate(record)
        return TaxConfiguration(rate=vat.rate, inclusive=vat.inclusive, enabled=vat.enabled)

    async def _resolve_tax(self, organization_id: str, tax: Optional[TaxConfiguration]) -> TaxConfiguration:
        if tax is not None:
            return tax
        return await self.default_tax(organization_id)

    async def _create(self, organization_id: str, kind: str, payload: Dict[str, Any]) -> SalesDocument:
        collection, model = _document_type(kind)
        record = await self._store.create(
            collection_path(organization_id, collection),
            {"organization_id": organization_id, "kind": kind, **payload},
        )
        logger.info("Created %s %s for organization %s", kind, record["id"], organization_id)
        return model.model_validate(record)

    async def _priced(
        self, organization_id: str, items: Iterable[LineItemInput], tax: Optional[TaxConfiguration]
    ) -> Dict[str, Any]:
        lines = build_line_items(items, places=self._places)
        totals = summarize(lines, await self._resolve_tax(organization_id, tax), places=self._places)
        return {"items": [line.model_dump() for line in lines], **_totals_fields(totals)}

    async def create_quote(self, organization_id: str, request: QuoteCreateRequest) -> Quote:
        collection_path(organization_id, "quotes")
        payload = {
            "status": "draft",
            "client_name": request.client_name,
            "client_email": request.client_email,
            "client_address": request.client_address,
            "valid_until": request.valid_until,
            "notes": request.notes,
            **await self._priced(organization_id, request.items, request.tax),
        }
        return await self._create(organization_id, "quote", payload)

    async def create_invoice(self, organization_id: str, request: InvoiceCreateRequest) -> Invoice:
        collection_path(organization_id, "invoices")
        payload = {
            "status": "draft",
            "invoice_type": request.invoice_type,
            "client_name": request.client_name,
            "client_email": request.client_email,
            "client_address": request.client_address,
            "client_vat": request.client_vat,
            "due_date": request.due_date
            or _utc_now() + timedelta(days=self._settings.invoice_due_days),
            "template_id": request.template_id,
            "include_qr": request.include_qr,
            "notes": request.notes,
            **await self._priced(organization_id, request.items, request.tax),
        }
        return await self._create(organization_id, "invoice", payload)

    async def create_order(self, organization_id: str, request: OrderCreateRequest) -> Order:
        collection_path(organization_id, "orders")
        payload = {
            "status": "open",
            "order_type": request.order_type,
            "customer_name": request.customer_name,
            "notes": request.notes,
            **await self._priced(organization_id, request.items, request.tax),
        }
        return await self._create(organization_id, "order", payload)

    async def get(self, organization_id: str, kind: str, document_id: str) -> SalesDocument:
        collection, model = _document_type(kind)
        record = await self._store.get(document_path(organization_id, collection, document_id))
        if record is None:
            raise NotFound(f"{kind.title()} '{document_id}' not found")
        return model.model_validate(record)

    async def list(self, organization_id: str, kind: str) -> List[SalesDocument]:
        collection, model = _document_type(kind)
        records = await self._store.list(collection_path(organization_id, collection))
        return [model.model_validate(record) for record in records]

    async def delete(self, organization_id: str, kind: str, document_id: str) -> bool:
        collection, _ = _document_type(kind)
        return await self._store.delete(document_path(organization_id, collection, document_id))

    async def update_items(
        self, organization_id: str, kind: str, document_id: str, request: ItemsUpdateRequest
    ) -> SalesDocument:
        document = await self.get(organization_id, kind, document_id)
        ensure_editable(kind, document.status)
        tax = request.tax or TaxConfiguration(
            rate=document.tax_rate, inclusive=document.tax_inclusive
        )
        collection, model = _document_type(kind)
        record = await self._store.update(
            document_path(organization_id, collection, document_id),
            await self._priced(organization_id, request.items, tax),
        )
        logger.info("Updated items of %s %s", kind, document_id)
        return model.model_validate(record)

    async def transition(
        self, organization_id: str, kind: str, document_id: str, target: str
    ) -> SalesDocument:
        if kind == "quote" and target == "converted":
            raise InvalidInput("Quotes are converted through the convert-to-invoice action")
        document = await self.get(organization_id, kind, document_id)
        ensure_transition(kind, document.status, target)
        collection, model = _document_type(kind)
        record = await self._store.update(
            document_path(organization_id, collection, document_id), {"status": target}
        )
        logger.info("Moved %s %s from %s to %s", kind, document_id, document.status, target)
        return model.model_validate(record)

    async def convert_quote_to_invoice(
        self, organization_id: str, quote_id: str, *, now: datetime | None = None
    ) -> Invoice:
        """Mark the quote converted and create a draft invoice from it.

        Both writes go through a single transaction. The invoice copies the
        quote's lines and is due ``invoice_due_days`` after the conversion;
        quotes carry no client VAT number so ``client_vat`` starts empty.
        """

        quote = await self.get(organization_id, "quote", quote_id)
        ensure_transition("quote", quote.status, "converted")

        now = now or _utc_now()
        invoices_path = collection_path(organization_id, "invoices")
        invoice_id = self._store.new_id(invoices_path)
        invoice_path = f"{invoices_path}/{invoice_id}"
        quote_path = document_path(organization_id, "quotes", quote_id)

        items = [item.model_dump() for item in quote.items]
        totals = summarize(
            quote.items,
            TaxConfiguration(rate=quote.tax_rate, inclusive=quote.tax_inclusive),
            places=self._places,
        )
        invoice_payload = {
            "organization_id": organization_id,
            "kind": "invoice",
            "status": "draft",
            "invoice_type": "sales",
            "client_name": quote.client_name,
            "client_email": quote.client_email,
            "client_address": quote.client_address,
            "client_vat": None,
            "items": items,
            **_totals_fields(totals),
            "due_date": now + timedelta(days=self._settings.invoice_due_days),
            "notes": quote.notes,
            "quote_id": quote_id,
            "template_id": None,
            "include_qr": False,
            "created_at": now,
        }

        async with self._store.transaction() as txn:
            txn.update(quote_path, {"status": "converted", "invoice_id": invoice_id})
            txn.set(invoice_path, invoice_payload)

        logger.info("Converted quote %s into invoice %s", quote_id, invoice_id)
        record = await self._store.get(invoice_path)
        return Invoice.model_validate(record)

    async def issue_receipt(self, organization_id: str, order_id: str) -> Receipt:
        """Return the receipt of a completed order, creating it on first call."""

        order = await self.get(organization_id, "order", order_id)
        if order.status != "completed":
            raise InvalidInput(f"Order '{order_id}' must be completed before a receipt is issued")

        receipts_path = collection_path(organization_id, "receipts")
        existing = await self._store.list(receipts_path, where={"order_id": order_id})
        if existing:
            return Receipt.model_validate(existing[0])

        payments = await self._store.list(
            collection_path(organization_id, "payments"), where={"document_id": order_id}
        )
        payload = {
            "status": "issued",
            "order_id": order_id,
            "order_type": getattr(order, "order_type", None),
            "customer_name": getattr(order, "customer_name", None),
            "table_name": getattr(order, "table_name", None),
            "items": [item.model_dump() for item in order.items],
            "subtotal": order.subtotal,
            "tax_rate": order.tax_rate,
            "tax_inclusive": order.tax_inclusive,
            "tax_amount": order.tax_amount,
            "total": order.total,
            "payments": [
                ReceiptPayment(method=str(p["method"]), amount=p["amount"]).model_dump()
                for p in payments
            ],
            "amount_paid": total_paid(payments, places=self._places),
            "notes": order.notes,
        }
        return await self._create(organization_id, "receipt", payload)

    async def mark_overdue(self, organization_id: str, *, now: datetime | None = None) -> List[Invoice]:
        """Move unpaid invoices past their due date to ``overdue``."""

        now = now or _utc_now()
        changed: List[Invoice] = []
        for invoice in await self.list(organization_id, "invoice"):
            if invoice.status not in ("sent", "partially_paid") or invoice.due_date is None:
                continue
            due = invoice.due_date
            if due.tzinfo is None:
                due = due.replace(tzinfo=timezone.utc)
            if due < now:
                changed.append(await self.transition(organization_id, "invoice", invoice.id, "overdue"))
        return changed

    async def mark_expired(self, organization_id: str, *, now: datetime | None = None) -> List[Quote]:
        """Move draft or sent quotes past their ``valid_until`` date to ``expired``."""

        now = now or _utc_now()
        changed: List[Quote] = []
        for quote in await self.list(organization_id, "quote"):
            if quote.status not in ("draft", "sent") or quote.valid_until is None:
                continue
            valid_until = quote.valid_until
            if valid_until.tzinfo is None:
                valid_until = valid_until.replace(tzinfo=timezone.utc)
            if valid_until < now:
                changed.append(await self.transition(organization_id, "quote", quote.id, "expired"))
        if changed:
            logger.info("Expired %d quotes for %s", len(changed), organization_id)
        return changed
