import asyncio
import smtplib
from decimal import Decimal
from typing import List

import pytest

from posdesk.config import Settings
from posdesk.schemas.documents import InvoiceCreateRequest, LineItemInput
from posdesk.schemas.email import EmailAttachment, SendInvoiceEmailRequest
from posdesk.schemas.templates import TemplateCreateRequest
from posdesk.services import email as email_module
from posdesk.services.documents import DocumentService
from posdesk.services.email import InvoiceEmailService, SmtpTransport, classify_smtp_error
from posdesk.services.exceptions import EmailDeliveryError
from posdesk.services.rendering import TemplateService

ORG = "org-mail"

SMTP_SETTINGS = Settings(smtp_host="smtp.example.com", smtp_user="billing@example.com", smtp_password="secret")


class RecordingTransport:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: List[dict] = []
        self.error = error

    async def send(self, *, recipient: str, subject: str, body: str, attachment: EmailAttachment) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"recipient": recipient, "subject": subject, "body": body, "attachment": attachment}
        )


def _invoice_id(org: str = ORG) -> str:
    invoice = asyncio.run(
        DocumentService().create_invoice(
            org,
            InvoiceCreateRequest(
                client_name="Acme",
                items=[LineItemInput(name="Support plan", quantity=1, unit_price=Decimal("200"))],
            ),
        )
    )
    return invoice.id


def _request(invoice_id: str, **overrides) -> SendInvoiceEmailRequest:
    data = {
        "invoiceId": invoice_id,
        "recipientEmail": "client@acme.example",
        "subject": "Your invoice",
        "message": "Please find your invoice attached.",
        "organizationId": ORG,
    }
    data.update(overrides)
    return SendInvoiceEmailRequest.model_validate(data)


def _service(transport: RecordingTransport, settings: Settings = SMTP_SETTINGS) -> InvoiceEmailService:
    return InvoiceEmailService(settings=settings, transport=transport)


def test_sends_plain_text_attachment_without_template() -> None:
    invoice_id = _invoice_id()
    transport = RecordingTransport()

    message = asyncio.run(_service(transport).send(_request(invoice_id)))

    assert message == "Email sent successfully"
    sent = transport.sent[0]
    assert sent["recipient"] == "client@acme.example"
    assert sent["body"] == "Please find your invoice attached."
    attachment = sent["attachment"]
    assert attachment.filename == f"invoice-{invoice_id[-8:]}.txt"
    assert attachment.content_type == "text/plain"
    assert b"Support plan" in attachment.content


def test_sends_rendered_html_with_template() -> None:
    invoice_id = _invoice_id()
    transport = RecordingTransport()

    asyncio.run(_service(transport).send(_request(invoice_id, templateId="sales-invoice-english")))

    attachment = transport.sent[0]["attachment"]
    assert attachment.content_type == "text/html"
    assert attachment.filename.endswith(".html")
    assert invoice_id.encode() in attachment.content


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"subject": None}, "Missing required fields"),
        ({"invoiceId": ""}, "Missing required fields"),
        ({"recipientEmail": "not-an-email"}, "Invalid email address"),
    ],
)
def test_invalid_requests_are_rejected(overrides, error) -> None:
    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(RecordingTransport()).send(_request("INV-00001", **overrides)))

    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == error


def test_missing_smtp_settings_yield_503() -> None:
    invoice_id = _invoice_id()

    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(RecordingTransport(), Settings()).send(_request(invoice_id)))

    assert excinfo.value.status_code == 503
    assert excinfo.value.code == "SMTP_NOT_CONFIGURED"
    assert "POSDESK_SMTP_HOST" in str(excinfo.value)


def test_unknown_invoice_yields_404() -> None:
    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(RecordingTransport()).send(_request("INV-77777")))

    assert excinfo.value.status_code == 404


def test_invoice_of_other_organization_yields_403() -> None:
    invoice_id = _invoice_id("someone-else")

    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(RecordingTransport()).send(_request(invoice_id)))

    assert excinfo.value.status_code == 403


def test_broken_template_yields_500() -> None:
    invoice_id = _invoice_id()
    template = asyncio.run(
        TemplateService().create(
            ORG,
            TemplateCreateRequest(category="invoice", name="Broken", content="{{#each clientName}}x{{/each}}"),
        )
    )

    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(RecordingTransport()).send(_request(invoice_id, templateId=template.id)))

    assert excinfo.value.status_code == 500
    assert excinfo.value.code == "RENDER_FAILED"


def test_smtp_failure_is_classified() -> None:
    invoice_id = _invoice_id()
    transport = RecordingTransport(smtplib.SMTPAuthenticationError(535, b"bad credentials"))

    with pytest.raises(EmailDeliveryError) as excinfo:
        asyncio.run(_service(transport).send(_request(invoice_id)))

    assert excinfo.value.status_code == 500
    assert excinfo.value.code == "SMTP_AUTH_FAILED"


@pytest.mark.parametrize(
    "error, code",
    [
        (smtplib.SMTPAuthenticationError(535, b"auth"), "SMTP_AUTH_FAILED"),
        (ConnectionRefusedError(), "SMTP_CONNECTION_FAILED"),
        (smtplib.SMTPConnectError(421, b"busy"), "SMTP_CONNECTION_FAILED"),
        (TimeoutError(), "SMTP_TIMEOUT"),
        (smtplib.SMTPRecipientsRefused({"x@y.z": (550, b"no such user")}), "SMTP_RECIPIENT_REJECTED"),
        (smtplib.SMTPDataError(550, b"rejected"), "SMTP_RECIPIENT_REJECTED"),
        (smtplib.SMTPServerDisconnected("lost"), "SMTP_ERROR"),
    ],
)
def test_classify_smtp_error(error, code) -> None:
    assert classify_smtp_error(error)[0] == code


def test_smtp_transport_uses_starttls_and_login(monkeypatch) -> None:
    calls = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None) -> None:
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc_info) -> None:
            calls.append(("quit",))

        def starttls(self) -> None:
            calls.append(("starttls",))

        def login(self, user, password) -> None:
            calls.append(("login", user, password))

        def send_message(self, msg) -> None:
            calls.append(("send", msg["To"], msg["Subject"], len(msg.get_payload())))

    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
    transport = SmtpTransport(SMTP_SETTINGS)
    attachment = EmailAttachment(filename="invoice.txt", content=b"hello", content_type="text/plain")

    asyncio.run(
        transport.send(recipient="client@acme.example", subject="Hi", body="Body", attachment=attachment)
    )

    assert calls == [
        ("connect", "smtp.example.com", 587),
        ("starttls",),
        ("login", "billing@example.com", "secret"),
        ("send", "client@acme.example", "Hi", 2),
        ("quit",),
    ]
