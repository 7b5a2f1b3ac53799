from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PaymentStatus = Literal["unpaid", "partial", "paid"]


class PaymentCreateRequest(BaseModel):
    document_id: str = Field(..., min_length=1)
    document_kind: Literal["invoice", "order"] = "invoice"
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., min_length=1)
    date: Optional[datetime] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class Payment(BaseModel):
    id: str
    organization_id: str
    document_id: str
    document_kind: Literal["invoice", "order"] = "invoice"
    amount: Decimal
    method: str
    date: datetime
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class BalanceSummary(BaseModel):
    total: Decimal
    paid: Decimal
    remaining: Decimal
    difference: Decimal = Field(..., description="total - paid, negative when overpaid")
    overpaid: Decimal
    status: PaymentStatus


class PaymentListResponse(BaseModel):
    total: int
    items: List[Payment]
