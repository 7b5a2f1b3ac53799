from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from posdesk.schemas.email import SendInvoiceEmailRequest
from posdesk.services.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

EMAIL_ERROR_MESSAGES: Dict[str, str] = {
    "SMTP_NOT_CONFIGURED": (
        "Email service is not configured. Please contact your administrator to set up SMTP settings."
    ),
    "SMTP_AUTH_FAILED": "The email server rejected our credentials. Please contact your administrator.",
    "SMTP_CONNECTION_FAILED": "The email server could not be reached. Please try again later.",
    "SMTP_TIMEOUT": "The email server did not respond in time. Please try again later.",
    "SMTP_RECIPIENT_REJECTED": "The recipient address was rejected. Please check the email address.",
    "SMTP_ERROR": "The email could not be sent because of a mail server error. Please try again later.",
}


class EmailGatewayClient:
    """Async HTTP client for a remote ``/api/send-invoice`` endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._client: Optional[httpx.AsyncClient] = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def send_invoice(self, request: SendInvoiceEmailRequest) -> str:
        client = await self._ensure_client()
        payload = request.model_dump(by_alias=True, exclude_none=True)
        try:
            response = await client.post("/api/send-invoice", json=payload)
        except httpx.RequestError as exc:
            logger.exception("Unable to reach email gateway: %s", exc)
            raise EmailDeliveryError(
                "Unable to reach the email service", "GATEWAY_UNREACHABLE", status_code=502, cause=exc
            ) from exc

        body = self._json(response)
        if response.is_error:
            code = body.get("code") or ("SMTP_ERROR" if response.is_server_error else "REQUEST_FAILED")
            message = EMAIL_ERROR_MESSAGES.get(code) or body.get("error") or "Failed to send email"
            logger.error("Email gateway returned %s (%s): %s", response.status_code, code, body.get("error"))
            raise EmailDeliveryError(message, code, status_code=response.status_code)
        return str(body.get("message", "Email sent successfully"))

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
