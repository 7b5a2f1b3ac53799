from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class VatSettings(BaseModel):
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    inclusive: bool = False
    enabled: bool = True


class StoreProfile(BaseModel):
    name: str = ""
    name_ar: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    vat_number: str = ""
    logo_url: str = ""
    stamp_url: str = ""
    custom_header: Optional[str] = None
    custom_footer: Optional[str] = None
