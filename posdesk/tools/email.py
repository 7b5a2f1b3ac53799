import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from posdesk.clients.email_gateway import EmailGatewayClient
from posdesk.dependencies.services import get_email_service
from posdesk.schemas.email import (
    EmailErrorResponse,
    SendInvoiceEmailRequest,
    SendInvoiceEmailResponse,
)
from posdesk.services import InvoiceEmailService
from posdesk.services.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_email_gateway(request: Request) -> Optional[EmailGatewayClient]:
    return getattr(request.app.state, "email_gateway", None)


@router.post(
    "/api/send-invoice",
    response_model=SendInvoiceEmailResponse,
    responses={
        400: {"model": EmailErrorResponse},
        403: {"model": EmailErrorResponse},
        404: {"model": EmailErrorResponse},
        500: {"model": EmailErrorResponse},
        503: {"model": EmailErrorResponse},
    },
)
async def send_invoice(
    req: SendInvoiceEmailRequest,
    service: InvoiceEmailService = Depends(get_email_service),
    gateway: Optional[EmailGatewayClient] = Depends(get_email_gateway),
):
    """Email an invoice to a customer, locally over SMTP or through the gateway."""

    try:
        if gateway is not None:
            message = await gateway.send_invoice(req)
        else:
            message = await service.send(req)
    except EmailDeliveryError as exc:
        body = EmailErrorResponse(error=str(exc), code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))
    return SendInvoiceEmailResponse(message=message)
