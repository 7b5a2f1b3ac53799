from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from posdesk.dependencies.services import get_table_service
from posdesk.schemas.tables import (
    AssignTableRequest,
    MoveOrderRequest,
    ReleaseTableRequest,
    Table,
    TableCreateRequest,
    TableStatusRequest,
)
from posdesk.services import TableService
from posdesk.services.exceptions import ServiceError
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}/tables")


@router.post("", response_model=Table, status_code=201)
async def create_table(
    organization_id: str,
    req: TableCreateRequest,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.create(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=List[Table])
async def list_tables(
    organization_id: str,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.list(organization_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/move", response_model=List[Table])
async def move_order(
    organization_id: str,
    req: MoveOrderRequest,
    service: TableService = Depends(get_table_service),
):
    """Move an order to another table, releasing the one it sat at."""

    try:
        return await service.move_order(
            organization_id, req.order_id, req.from_table_id, req.to_table_id
        )
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/{table_id}", response_model=Table)
async def get_table(
    organization_id: str,
    table_id: str,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.get(organization_id, table_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.delete("/{table_id}", status_code=204)
async def delete_table(
    organization_id: str,
    table_id: str,
    service: TableService = Depends(get_table_service),
):
    try:
        deleted = await service.delete(organization_id, table_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Table '{table_id}' not found")
    return Response(status_code=204)


@router.put("/{table_id}/status", response_model=Table)
async def set_table_status(
    organization_id: str,
    table_id: str,
    req: TableStatusRequest,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.set_status(organization_id, table_id, req.status)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{table_id}/assign", response_model=Table)
async def assign_order(
    organization_id: str,
    table_id: str,
    req: AssignTableRequest,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.assign_order(organization_id, table_id, req.order_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{table_id}/release", response_model=Table)
async def release_table(
    organization_id: str,
    table_id: str,
    req: ReleaseTableRequest,
    service: TableService = Depends(get_table_service),
):
    try:
        return await service.release(organization_id, table_id, req.order_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
