"""Send invoices to customers over SMTP."""

from __future__ import annotations

import asyncio
import logging
import re
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol, Tuple

from posdesk.config import Settings, get_settings
from posdesk.schemas.documents import Invoice
from posdesk.schemas.email import EmailAttachment, SendInvoiceEmailRequest
from posdesk.schemas.settings import StoreProfile
from posdesk.services.exceptions import EmailDeliveryError, NotFound, ServiceError
from posdesk.services.rendering import TemplateService, plain_text_invoice
from posdesk.services.store import DocumentStore, document_path, get_document_store

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class MailTransport(Protocol):
    async def send(
        self, *, recipient: str, subject: str, body: str, attachment: EmailAttachment
    ) -> None:
        ...


class SmtpTransport:
    """Deliver mail with :mod:`smtplib` on a worker thread."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _build_message(
        self, recipient: str, subject: str, body: str, attachment: EmailAttachment
    ) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self._settings.smtp_user or ""
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))
        maintype, _, subtype = attachment.content_type.partition("/")
        part = MIMEApplication(attachment.content, _subtype=subtype or "octet-stream")
        part.replace_header("Content-Type", f"{maintype}/{subtype}")
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        msg.attach(part)
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        settings = self._settings
        smtp_class = smtplib.SMTP_SSL if settings.smtp_secure else smtplib.SMTP
        with smtp_class(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as server:
            if not settings.smtp_secure:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)

    async def send(
        self, *, recipient: str, subject: str, body: str, attachment: EmailAttachment
    ) -> None:
        msg = self._build_message(recipient, subject, body, attachment)
        await asyncio.to_thread(self._send_sync, msg)


def classify_smtp_error(exc: Exception) -> Tuple[str, str]:
    """Map a delivery exception to an error code and a user facing message."""

    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return (
            "SMTP_AUTH_FAILED",
            "SMTP authentication failed. Please check your SMTP username and password.",
        )
    if isinstance(exc, (ConnectionRefusedError, smtplib.SMTPConnectError)):
        return (
            "SMTP_CONNECTION_FAILED",
            "Cannot connect to SMTP server. Please check your SMTP host and port settings.",
        )
    if isinstance(exc, TimeoutError):
        return (
            "SMTP_TIMEOUT",
            "SMTP connection timed out. Please check your network connection and SMTP server.",
        )
    if isinstance(exc, smtplib.SMTPRecipientsRefused) or (
        isinstance(exc, smtplib.SMTPResponseException) and exc.smtp_code == 550
    ):
        return (
            "SMTP_RECIPIENT_REJECTED",
            "Email rejected by SMTP server. The recipient email address may be invalid.",
        )
    if str(exc):
        return "SMTP_ERROR", f"SMTP Error: {exc}"
    return "SMTP_ERROR", "Failed to send email due to SMTP error."


class InvoiceEmailService:
    """Validate a send request, build the attachment and hand it to a transport."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        settings: Settings | None = None,
        transport: MailTransport | None = None,
        templates: TemplateService | None = None,
    ) -> None:
        self._store = store or get_document_store()
        self._settings = settings or get_settings()
        self._transport = transport or SmtpTransport(self._settings)
        self._templates = templates or TemplateService(self._store, settings=self._settings)

    async def send(self, request: SendInvoiceEmailRequest) -> str:
        if not (
            request.invoice_id
            and request.recipient_email
            and request.subject
            and request.message
            and request.organization_id
        ):
            raise EmailDeliveryError("Missing required fields", "INVALID_REQUEST", status_code=400)
        if not EMAIL_RE.match(request.recipient_email):
            raise EmailDeliveryError("Invalid email address", "INVALID_EMAIL", status_code=400)

        missing = self._settings.missing_smtp_settings()
        if missing:
            logger.error("SMTP configuration incomplete, missing %s", ", ".join(missing))
            raise EmailDeliveryError(
                f"Missing required SMTP configuration: {', '.join(missing)}",
                "SMTP_NOT_CONFIGURED",
                status_code=503,
            )

        invoice = await self._load_invoice(request.organization_id, request.invoice_id)
        attachment = await self._attachment(invoice, request.template_id)

        try:
            await self._transport.send(
                recipient=request.recipient_email,
                subject=request.subject,
                body=request.message,
                attachment=attachment,
            )
        except (smtplib.SMTPException, OSError) as exc:
            code, message = classify_smtp_error(exc)
            logger.error("SMTP error sending invoice %s: %s (%s)", invoice.id, exc, code)
            raise EmailDeliveryError(message, code, status_code=500, cause=exc) from exc

        logger.info("Email sent to %s for invoice %s", request.recipient_email, invoice.id)
        return "Email sent successfully"

    async def _load_invoice(self, organization_id: str, invoice_id: str) -> Invoice:
        record = await self._store.get(document_path(organization_id, "invoices", invoice_id))
        if record is None:
            record = await self._store.locate("invoices", invoice_id)
        if record is None:
            raise EmailDeliveryError("Invoice not found", "NOT_FOUND", status_code=404)
        invoice = Invoice.model_validate(record)
        if invoice.organization_id != organization_id:
            logger.warning(
                "Invoice %s of %s requested by %s", invoice_id, invoice.organization_id, organization_id
            )
            raise EmailDeliveryError("Unauthorized access to invoice", "FORBIDDEN", status_code=403)
        return invoice

    async def _attachment(self, invoice: Invoice, template_id: str | None) -> EmailAttachment:
        suffix = invoice.id[-8:]
        if not template_id:
            profile = await self._profile(invoice.organization_id)
            text = plain_text_invoice(
                invoice,
                profile,
                currency=self._settings.currency,
                places=self._settings.currency_precision,
            )
            return EmailAttachment(
                filename=f"invoice-{suffix}.txt",
                content=text.encode("utf-8"),
                content_type="text/plain",
            )

        try:
            template = await self._templates.get(invoice.organization_id, "invoice", template_id)
        except NotFound as exc:
            raise EmailDeliveryError(
                "Invoice template not found. Please select a different template or contact support.",
                "TEMPLATE_NOT_FOUND",
                status_code=404,
                cause=exc,
            ) from exc
        try:
            html = await self._templates.render_document(invoice.organization_id, invoice, template.id)
        except ServiceError as exc:
            logger.exception("Error rendering invoice %s with template %s", invoice.id, template.id)
            raise EmailDeliveryError(
                "Failed to render invoice template. The template may be corrupted.",
                "RENDER_FAILED",
                status_code=500,
                cause=exc,
            ) from exc
        if not html.strip():
            raise EmailDeliveryError(
                "Invoice template rendering failed. Please try a different template.",
                "RENDER_FAILED",
                status_code=500,
            )
        return EmailAttachment(
            filename=f"invoice-{suffix}.html",
            content=html.encode("utf-8"),
            content_type="text/html",
        )

    async def _profile(self, organization_id: str) -> StoreProfile:
        record = await self._store.get(document_path(organization_id, "settings", "store"))
        return StoreProfile.model_validate(record) if record else StoreProfile()
