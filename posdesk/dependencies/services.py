from __future__ import annotations

from typing import Dict

from fastapi import Depends, Request, WebSocket

from posdesk.config import Settings, get_settings
from posdesk.services import (
    DocumentService,
    InvoiceEmailService,
    PaymentService,
    PosSessionStore,
    SettingsService,
    TableService,
    TemplateService,
)
from posdesk.services.store import DocumentStore, get_document_store
from posdesk.services.subscriptions import SubscriptionManager


def get_store() -> DocumentStore:
    return get_document_store()


def get_document_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> DocumentService:
    return DocumentService(store, settings=settings)


def get_payment_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> PaymentService:
    return PaymentService(store, settings=settings)


def get_table_service(store: DocumentStore = Depends(get_store)) -> TableService:
    return TableService(store)


def get_settings_service(store: DocumentStore = Depends(get_store)) -> SettingsService:
    return SettingsService(store)


def get_template_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TemplateService:
    return TemplateService(store, settings=settings)


def get_email_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    templates: TemplateService = Depends(get_template_service),
) -> InvoiceEmailService:
    return InvoiceEmailService(store, settings=settings, templates=templates)


def get_subscription_manager(websocket: WebSocket) -> SubscriptionManager:
    manager = getattr(websocket.app.state, "subscriptions", None)
    store = get_document_store()
    if manager is None or manager.store is not store:
        manager = SubscriptionManager(store)
        websocket.app.state.subscriptions = manager
    return manager


def get_pos_storage(request: Request) -> Dict[str, str]:
    storage = getattr(request.app.state, "pos_storage", None)
    if storage is None:
        storage = {}
        request.app.state.pos_storage = storage
    return storage


def get_pos_session(
    organization_id: str,
    storage: Dict[str, str] = Depends(get_pos_storage),
) -> PosSessionStore:
    return PosSessionStore(storage, organization_id)
