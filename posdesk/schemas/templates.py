from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

TemplateCategory = Literal["receipt", "invoice", "quote"]


class Template(BaseModel):
    id: str
    category: TemplateCategory
    type: str = Field(..., description="Format/locale, e.g. english_a4 or arabic_thermal")
    name: str
    content: str
    is_default: bool = False
    built_in: bool = False
    organization_id: Optional[str] = None
    created_at: Optional[datetime] = None


class TemplateCreateRequest(BaseModel):
    category: TemplateCategory
    type: str = Field("custom", min_length=1)
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    is_default: bool = False


class TemplateListResponse(BaseModel):
    total: int
    items: List[Template]


class RenderPreviewRequest(BaseModel):
    content: str
    data: Dict[str, Any] = Field(default_factory=dict)


class RenderPreviewResponse(BaseModel):
    html: str
