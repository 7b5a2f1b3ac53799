from fastapi import APIRouter, Depends

from posdesk.dependencies.services import get_settings_service
from posdesk.schemas.settings import StoreProfile, VatSettings
from posdesk.services import SettingsService
from posdesk.services.exceptions import ServiceError
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}/settings")


@router.get("/vat", response_model=VatSettings)
async def get_vat(
    organization_id: str,
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return await service.get_vat(organization_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.put("/vat", response_model=VatSettings)
async def set_vat(
    organization_id: str,
    req: VatSettings,
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return await service.set_vat(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/store", response_model=StoreProfile)
async def get_store_profile(
    organization_id: str,
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return await service.get_store_profile(organization_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.put("/store", response_model=StoreProfile)
async def set_store_profile(
    organization_id: str,
    req: StoreProfile,
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return await service.set_store_profile(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc
