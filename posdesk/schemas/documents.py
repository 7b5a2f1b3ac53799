from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

LineItemKind = Literal["product", "service"]
DocumentKind = Literal["quote", "invoice", "order", "receipt"]
InvoiceType = Literal["sales", "purchase"]

QuoteStatus = Literal["draft", "sent", "accepted", "rejected", "converted", "expired"]
InvoiceStatus = Literal[
    "draft", "sent", "partially_paid", "paid", "overdue", "cancelled"
]
OrderStatus = Literal["open", "saved", "completed", "cancelled"]


class LineItemInput(BaseModel):
    """A line as submitted by a form; the total is always derived server side."""

    id: Optional[str] = None
    kind: LineItemKind = "product"
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    product_id: Optional[str] = None
    service_id: Optional[str] = None


class LineItem(LineItemInput):
    id: str
    total: Decimal


class TaxConfiguration(BaseModel):
    rate: Decimal = Field(default=Decimal("0"), ge=0, description="Percentage, e.g. 15 for 15%")
    inclusive: bool = False
    enabled: bool = True


class DocumentTotals(BaseModel):
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    base_amount: Decimal
    inclusive: bool = False


class SalesDocument(BaseModel):
    """Fields shared by quotes, invoices, orders and receipts."""

    model_config = ConfigDict(extra="ignore")

    id: str
    organization_id: str
    items: List[LineItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_inclusive: bool = False
    tax_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: str
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class Quote(SalesDocument):
    kind: Literal["quote"] = "quote"
    status: QuoteStatus = "draft"
    client_name: str
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    valid_until: Optional[datetime] = None
    invoice_id: Optional[str] = None


class Invoice(SalesDocument):
    kind: Literal["invoice"] = "invoice"
    status: InvoiceStatus = "draft"
    invoice_type: InvoiceType = "sales"
    client_name: str
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    client_vat: Optional[str] = None
    quote_id: Optional[str] = None
    template_id: Optional[str] = None
    include_qr: bool = False


class Order(SalesDocument):
    kind: Literal["order"] = "order"
    status: OrderStatus = "open"
    order_type: Optional[str] = None
    customer_name: Optional[str] = None
    table_id: Optional[str] = None
    table_name: Optional[str] = None


class ReceiptPayment(BaseModel):
    method: str
    amount: Decimal


class Receipt(SalesDocument):
    kind: Literal["receipt"] = "receipt"
    status: Literal["issued"] = "issued"
    order_id: str
    order_type: Optional[str] = None
    customer_name: Optional[str] = None
    table_name: Optional[str] = None
    payments: List[ReceiptPayment] = Field(default_factory=list)
    amount_paid: Decimal = Decimal("0")


AnyDocument = Annotated[Union[Quote, Invoice, Order, Receipt], Field(discriminator="kind")]


class QuoteCreateRequest(BaseModel):
    client_name: str = Field(..., min_length=1)
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    items: List[LineItemInput] = Field(default_factory=list)
    tax: Optional[TaxConfiguration] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None


class InvoiceCreateRequest(BaseModel):
    client_name: str = Field(..., min_length=1)
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    client_vat: Optional[str] = None
    invoice_type: InvoiceType = "sales"
    items: List[LineItemInput] = Field(default_factory=list)
    tax: Optional[TaxConfiguration] = None
    due_date: Optional[datetime] = None
    template_id: Optional[str] = None
    include_qr: bool = False
    notes: Optional[str] = None


class OrderCreateRequest(BaseModel):
    order_type: Optional[str] = None
    customer_name: Optional[str] = None
    items: List[LineItemInput] = Field(default_factory=list)
    tax: Optional[TaxConfiguration] = None
    notes: Optional[str] = None


class ItemsUpdateRequest(BaseModel):
    items: List[LineItemInput]
    tax: Optional[TaxConfiguration] = None


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1)
