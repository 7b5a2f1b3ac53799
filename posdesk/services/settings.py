from __future__ import annotations

import logging

from posdesk.schemas.settings import StoreProfile, VatSettings
from posdesk.services.store import DocumentStore, document_path, get_document_store

logger = logging.getLogger(__name__)


class SettingsService:
    """Organization level VAT and store profile documents."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self._store = store or get_document_store()

    async def get_vat(self, organization_id: str) -> VatSettings:
        record = await self._store.get(document_path(organization_id, "settings", "vat"))
        return VatSettings.model_validate(record) if record else VatSettings()

    async def set_vat(self, organization_id: str, vat: VatSettings) -> VatSettings:
        logger.info("Updating VAT settings for %s: %s", organization_id, vat.model_dump())
        record = await self._store.set(
            document_path(organization_id, "settings", "vat"), vat.model_dump()
        )
        return VatSettings.model_validate(record)

    async def get_store_profile(self, organization_id: str) -> StoreProfile:
        record = await self._store.get(document_path(organization_id, "settings", "store"))
        return StoreProfile.model_validate(record) if record else StoreProfile()

    async def set_store_profile(self, organization_id: str, profile: StoreProfile) -> StoreProfile:
        record = await self._store.set(
            document_path(organization_id, "settings", "store"), profile.model_dump()
        )
        return StoreProfile.model_validate(record)
