from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

TableStatus = Literal["available", "occupied", "reserved", "maintenance"]


class Table(BaseModel):
    id: str
    organization_id: str
    name: str
    capacity: int = 1
    status: TableStatus = "available"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TableCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    capacity: int = Field(1, ge=1)
    status: TableStatus = "available"


class TableStatusRequest(BaseModel):
    status: TableStatus


class AssignTableRequest(BaseModel):
    order_id: str = Field(..., min_length=1)


class MoveOrderRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    from_table_id: str = Field(..., min_length=1)
    to_table_id: str = Field(..., min_length=1)


class ReleaseTableRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
