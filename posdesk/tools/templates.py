from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import HTMLResponse

from posdesk.dependencies.services import get_document_service, get_template_service
from posdesk.schemas.templates import (
    RenderPreviewRequest,
    RenderPreviewResponse,
    Template,
    TemplateCategory,
    TemplateCreateRequest,
    TemplateListResponse,
)
from posdesk.services import DocumentService, TemplateService
from posdesk.services.exceptions import ServiceError
from posdesk.services.templates import render_template
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}")


@router.post("/templates/preview", response_model=RenderPreviewResponse)
async def preview_template(organization_id: str, req: RenderPreviewRequest):
    try:
        return RenderPreviewResponse(html=render_template(req.content, req.data))
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/templates", response_model=Template, status_code=201)
async def create_template(
    organization_id: str,
    req: TemplateCreateRequest,
    service: TemplateService = Depends(get_template_service),
):
    try:
        return await service.create(organization_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/templates/{category}", response_model=TemplateListResponse)
async def list_templates(
    organization_id: str,
    category: TemplateCategory,
    service: TemplateService = Depends(get_template_service),
):
    try:
        templates = await service.list(organization_id, category)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return TemplateListResponse(total=len(templates), items=templates)


@router.get("/templates/{category}/{template_id}", response_model=Template)
async def get_template(
    organization_id: str,
    category: TemplateCategory,
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    try:
        return await service.get(organization_id, category, template_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.delete("/templates/{category}/{template_id}", status_code=204)
async def delete_template(
    organization_id: str,
    category: TemplateCategory,
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    try:
        deleted = await service.delete(organization_id, category, template_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    return Response(status_code=204)


@router.post("/templates/{category}/{template_id}/default", response_model=Template)
async def set_default_template(
    organization_id: str,
    category: TemplateCategory,
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    try:
        return await service.set_default(organization_id, category, template_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/print/{kind}/{document_id}", response_class=HTMLResponse)
async def print_document(
    organization_id: str,
    kind: TemplateCategory,
    document_id: str,
    template_id: Optional[str] = None,
    documents: DocumentService = Depends(get_document_service),
    templates: TemplateService = Depends(get_template_service),
):
    """Render a quote, invoice or receipt as printable HTML."""

    try:
        document = await documents.get(organization_id, kind, document_id)
        html = await templates.render_document(organization_id, document, template_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return HTMLResponse(content=html)
