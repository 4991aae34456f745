from datetime import date
from decimal import Decimal
from typing import List

from pydantic import EmailStr, Field

from shared.schemas import CamelModel


class OrderItemRequest(CamelModel):
    product_id: int
    quantity: int = Field(gt=0)

class OrderRequest(CamelModel):
    customer_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    items: List[OrderItemRequest] = Field(min_length=1)

class OrderItemResponse(CamelModel):
    product_name: str
    quantity: int
    total_price: Decimal

class OrderResponse(CamelModel):
    order_id: str
    customer_name: str
    email: str
    status: str
    order_date: date
    items: List[OrderItemResponse]

class PlaceOrderResponse(OrderResponse):
    # Semantic-index writes that failed after the order was committed
    index_warnings: List[str] = []
