from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SendInvoiceEmailRequest(BaseModel):
    """Body of ``POST /api/send-invoice``.

    Every field is optional at the schema level so that missing values are
    reported with the endpoint's own ``400`` error payload instead of a
    generic validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    invoice_id: Optional[str] = Field(default=None, alias="invoiceId")
    recipient_email: Optional[str] = Field(default=None, alias="recipientEmail")
    subject: Optional[str] = None
    message: Optional[str] = None
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    template_id: Optional[str] = Field(default=None, alias="templateId")


class SendInvoiceEmailResponse(BaseModel):
    message: str


class EmailErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None


class EmailAttachment(BaseModel):
    filename: str
    content: bytes
    content_type: str
