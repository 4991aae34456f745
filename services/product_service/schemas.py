from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from shared.schemas import CamelModel


class ProductCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(ge=0)
    product_available: bool = True
    release_date: Optional[date] = None

class ProductUpdate(ProductCreate):
    pass

class ProductResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    brand: Optional[str]
    category: Optional[str]
    price: Decimal
    stock_quantity: int
    product_available: bool
    release_date: Optional[date]
    image_name: Optional[str] = None
    image_type: Optional[str] = None

class ProductWriteResponse(ProductResponse):
    index_warnings: List[str] = []

class DescriptionRequest(CamelModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)

class DescriptionResponse(CamelModel):
    description: str
