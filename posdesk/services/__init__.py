"""Service package public API definitions.

Service implementations are imported lazily so that low level modules such
as ``posdesk.services.exceptions`` can be imported by the schemas, clients
and store without pulling in every service and its dependencies.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "DocumentService",
    "InvoiceEmailService",
    "PaymentService",
    "PosSessionStore",
    "SettingsService",
    "TableService",
    "TemplateService",
]

_SERVICE_MODULES = {
    "DocumentService": "documents",
    "InvoiceEmailService": "email",
    "PaymentService": "payments",
    "PosSessionStore": "pos_session",
    "SettingsService": "settings",
    "TableService": "tables",
    "TemplateService": "rendering",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .documents import DocumentService as DocumentService
    from .email import InvoiceEmailService as InvoiceEmailService
    from .payments import PaymentService as PaymentService
    from .pos_session import PosSessionStore as PosSessionStore
    from .rendering import TemplateService as TemplateService
    from .settings import SettingsService as SettingsService
    from .tables import TableService as TableService
