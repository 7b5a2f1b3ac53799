from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping

from posdesk.config import Settings, get_settings
from posdesk.schemas.payments import BalanceSummary, Payment, PaymentCreateRequest
from posdesk.services.exceptions import InvalidInput, NotFound
from posdesk.services.lifecycle import can_transition
from posdesk.services.store import (
    DocumentStore,
    collection_path,
    document_path,
    get_document_store,
)
from posdesk.services.totals import ZERO, round_currency, to_decimal

logger = logging.getLogger(__name__)

_DOCUMENT_COLLECTIONS = {"invoice": "invoices", "order": "orders"}


def _amount(payment: Any) -> Any:
    if isinstance(payment, Mapping):
        return payment.get("amount", 0)
    return getattr(payment, "amount", 0)


def total_paid(payments: Iterable[Any], *, places: int = 2) -> Decimal:
    """Sum of payment amounts; an empty list yields zero."""

    paid = ZERO
    for payment in payments:
        paid += to_decimal(_amount(payment) or 0)
    return round_currency(paid, places)


def remaining_balance(document_total: Any, payments: Iterable[Any], *, places: int = 2) -> Decimal:
    """``max(0, total - paid)``; see :func:`balance_summary` for the overpaid part."""

    return balance_summary(document_total, payments, places=places).remaining


def balance_summary(document_total: Any, payments: Iterable[Any], *, places: int = 2) -> BalanceSummary:
    total = round_currency(document_total, places)
    paid = total_paid(payments, places=places)
    difference = total - paid
    if paid <= 0 and total > 0:
        status = "unpaid"
    elif difference > 0:
        status = "partial"
    else:
        status = "paid"
    return BalanceSummary(
        total=total,
        paid=paid,
        remaining=max(ZERO, difference),
        difference=difference,
        overpaid=max(ZERO, -difference),
        status=status,
    )


class PaymentService:
    """Record payments against invoices and orders and report balances."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._store = store or get_document_store()
        self._settings = settings or get_settings()

    async def record(self, organization_id: str, request: PaymentCreateRequest) -> Payment:
        amount = round_currency(request.amount, self._settings.currency_precision)
        if amount <= 0:
            raise InvalidInput(f"Payment amount {request.amount} rounds to zero")
        payments_path = collection_path(organization_id, "payments")
        owner_path = document_path(
            organization_id, _DOCUMENT_COLLECTIONS[request.document_kind], request.document_id
        )
        owner = await self._store.get(owner_path)
        if owner is None:
            raise NotFound(f"{request.document_kind.title()} '{request.document_id}' not found")
        if owner.get("status") == "cancelled":
            raise InvalidInput(f"Cannot record a payment on a cancelled {request.document_kind}")

        logger.info(
            "Recording %s payment of %s on %s %s",
            request.method,
            request.amount,
            request.document_kind,
            request.document_id,
        )
        record = await self._store.create(
            payments_path,
            {
                "organization_id": organization_id,
                "document_id": request.document_id,
                "document_kind": request.document_kind,
                "amount": amount,
                "method": request.method,
                "date": request.date or datetime.now(timezone.utc),
                "reference": request.reference,
                "notes": request.notes,
            },
        )

        if request.document_kind == "invoice":
            await self._sync_invoice_status(organization_id, owner_path, owner)
        return Payment.model_validate(record)

    async def list(self, organization_id: str, document_id: str | None = None) -> List[Payment]:
        path = collection_path(organization_id, "payments")
        where = {"document_id": document_id} if document_id else None
        records = await self._store.list(path, where=where)
        return [Payment.model_validate(record) for record in records]

    async def balance(self, organization_id: str, document_kind: str, document_id: str) -> BalanceSummary:
        collection = _DOCUMENT_COLLECTIONS.get(document_kind)
        if collection is None:
            raise InvalidInput(f"Balances are tracked for invoices and orders, not '{document_kind}'")
        owner = await self._store.get(document_path(organization_id, collection, document_id))
        if owner is None:
            raise NotFound(f"{document_kind.title()} '{document_id}' not found")
        payments = await self.list(organization_id, document_id)
        return balance_summary(
            owner.get("total", 0), payments, places=self._settings.currency_precision
        )

    async def _sync_invoice_status(
        self, organization_id: str, invoice_path: str, invoice: Mapping[str, Any]
    ) -> None:
        payments = await self.list(organization_id, str(invoice["id"]))
        summary = balance_summary(
            invoice.get("total", 0), payments, places=self._settings.currency_precision
        )
        target = "paid" if summary.status == "paid" else "partially_paid"
        current = str(invoice.get("status"))
        if current != target and can_transition("invoice", current, target):
            logger.info("Invoice %s is now %s", invoice["id"], target)
            await self._store.update(invoice_path, {"status": target})
