from typing import Literal, Optional

from fastapi import APIRouter, Depends

from posdesk.dependencies.services import get_payment_service
from posdesk.schemas.payments import (
    BalanceSummary,
    Payment,
    PaymentCreateRequest,
    PaymentListResponse,
)
from posdesk.services import PaymentService
from posdesk.services.exceptions import ServiceError
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}")


@router.post("/payments", response_model=Payment, status_code=201)
async def record_payment(
    organization_id: str,
    req: PaymentCreateRequest,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return await service.record(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    organization_id: str,
    document_id: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        payments = await service.list(organization_id, document_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return PaymentListResponse(total=len(payments), items=payments)


@router.get("/balances/{document_kind}/{document_id}", response_model=BalanceSummary)
async def get_balance(
    organization_id: str,
    document_kind: Literal["invoice", "order"],
    document_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return await service.balance(organization_id, document_kind, document_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
