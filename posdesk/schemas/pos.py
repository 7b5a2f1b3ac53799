from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

PosView = Literal["items", "tables", "customers", "orders", "payment"]


class CartItem(BaseModel):
    id: str
    kind: Literal["product", "service"] = "product"
    name: str
    price: Decimal
    quantity: int = Field(1, ge=1)
    total: Decimal = Decimal("0")


class PosSessionState(BaseModel):
    """In-progress order kept between reloads of the POS screen."""

    cart: List[CartItem] = Field(default_factory=list)
    selected_table: Optional[Dict[str, Any]] = None
    selected_customer: Optional[Dict[str, Any]] = None
    selected_order_type: Optional[Dict[str, Any]] = None
    current_view: PosView = "items"
    category_path: List[str] = Field(default_factory=list)
    selected_order: Optional[Dict[str, Any]] = None
