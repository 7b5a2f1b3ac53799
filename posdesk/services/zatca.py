"""ZATCA (Saudi e-invoicing) QR payload encoding.

The QR code on a simplified tax invoice carries a base64 string of
tag-length-value records::

    1 seller name   2 seller VAT number   3 timestamp
    4 invoice total 5 VAT amount

All five tags are always written, an unknown value as a zero length record.
"""

from __future__ import annotations

import base64
import io
from datetime import datetime, timezone
from typing import List, Tuple

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from posdesk.services.exceptions import InvalidInput


def encode_tlv(tag: int, value: str) -> bytes:
    data = (value or "").encode("utf-8")
    if len(data) > 255:
        raise InvalidInput(f"ZATCA field {tag} is longer than 255 bytes")
    return bytes([tag, len(data)]) + data


def zatca_qr_payload(
    seller_name: str,
    vat_number: str,
    timestamp: datetime,
    total: str,
    vat_amount: str,
) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    fields: List[Tuple[int, str]] = [
        (1, seller_name),
        (2, vat_number),
        (3, timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")),
        (4, total),
        (5, vat_amount),
    ]
    encoded = b"".join(encode_tlv(tag, value) for tag, value in fields)
    return base64.b64encode(encoded).decode("ascii")


def qr_code_png(data: str, box_size: int = 4, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    if hasattr(image, "get_image"):
        # PilImage wraps the Pillow image it draws on.
        image = image.get_image()
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def qr_code_data_uri(data: str) -> str:
    """Return a PNG ``data:`` URI for ``data``, usable as an ``<img src>``."""

    if not data:
        return ""
    encoded = base64.b64encode(qr_code_png(data)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
