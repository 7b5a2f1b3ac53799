from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from posdesk.dependencies.services import get_document_service
from posdesk.schemas.documents import (
    AnyDocument,
    DocumentKind,
    Invoice,
    InvoiceCreateRequest,
    ItemsUpdateRequest,
    Order,
    OrderCreateRequest,
    Quote,
    QuoteCreateRequest,
    Receipt,
    StatusUpdateRequest,
)
from posdesk.services import DocumentService
from posdesk.services.exceptions import ServiceError
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}")


@router.post("/quotes", response_model=Quote, status_code=201)
async def create_quote(
    organization_id: str,
    req: QuoteCreateRequest,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.create_quote(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/invoices", response_model=Invoice, status_code=201)
async def create_invoice(
    organization_id: str,
    req: InvoiceCreateRequest,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.create_invoice(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/orders", response_model=Order, status_code=201)
async def create_order(
    organization_id: str,
    req: OrderCreateRequest,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.create_order(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/quotes/{quote_id}/convert", response_model=Invoice, status_code=201)
async def convert_quote(
    organization_id: str,
    quote_id: str,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.convert_quote_to_invoice(organization_id, quote_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/orders/{order_id}/receipt", response_model=Receipt)
async def issue_receipt(
    organization_id: str,
    order_id: str,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.issue_receipt(organization_id, order_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/invoices/mark-overdue", response_model=List[Invoice])
async def mark_overdue(
    organization_id: str,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.mark_overdue(organization_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/quotes/mark-expired", response_model=List[Quote])
async def mark_expired(
    organization_id: str,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.mark_expired(organization_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/documents/{kind}")
async def list_documents(
    organization_id: str,
    kind: DocumentKind,
    service: DocumentService = Depends(get_document_service),
) -> List[AnyDocument]:
    try:
        return await service.list(organization_id, kind)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/documents/{kind}/{document_id}")
async def get_document(
    organization_id: str,
    kind: DocumentKind,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
) -> AnyDocument:
    try:
        return await service.get(organization_id, kind, document_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.delete("/documents/{kind}/{document_id}", status_code=204)
async def delete_document(
    organization_id: str,
    kind: DocumentKind,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    try:
        deleted = await service.delete(organization_id, kind, document_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"{kind.title()} '{document_id}' not found")
    return Response(status_code=204)


@router.put("/documents/{kind}/{document_id}/items")
async def update_items(
    organization_id: str,
    kind: DocumentKind,
    document_id: str,
    req: ItemsUpdateRequest,
    service: DocumentService = Depends(get_document_service),
) -> AnyDocument:
    try:
        return await service.update_items(organization_id, kind, document_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/documents/{kind}/{document_id}/status")
async def update_status(
    organization_id: str,
    kind: DocumentKind,
    document_id: str,
    req: StatusUpdateRequest,
    service: DocumentService = Depends(get_document_service),
) -> AnyDocument:
    try:
        return await service.transition(organization_id, kind, document_id, req.status)
    except ServiceError as exc:
        raise http_error(exc) from exc
