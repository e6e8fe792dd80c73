from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from backoffice.models.order import OrderStatus


class Address(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)


class OrderItemCreate(BaseModel):
    product_id: str = Field(min_length=1)
    qty: int = Field(gt=0)


class OrderItem(BaseModel):
    product_id: str
    qty: int
    price: float


class OrderItemResponse(OrderItem):
    name: Optional[str] = None
    image: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(min_length=1)
    customer_name: str = Field(min_length=1, max_length=255)
    phone_number: str = Field(min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    billing_address: Address
    shipping_address: Optional[Address] = None
    note: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderResponse(BaseModel):
    id: str
    order_number: str
    items: List[OrderItemResponse]
    amount: float
    status: OrderStatus
    note: Optional[str] = None
    customer_name: str
    phone_number: str
    email: Optional[str] = None
    billing_address: Address
    shipping_address: Optional[Address] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrderSortField(str, Enum):
    ORDER_NUMBER = "orderNumber"
    AMOUNT = "amount"
    STATUS = "status"
    CUSTOMER_NAME = "customerName"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class OrderQuery(BaseModel):
    """Listing filters. Unknown sort fields or directions fall back to newest first."""

    order_number: Optional[str] = None
    status: Optional[OrderStatus] = None
    order_by: Optional[str] = None
    order: Optional[str] = None

    @property
    def sort_field(self) -> Optional[OrderSortField]:
        try:
            return OrderSortField(self.order_by)
        except ValueError:
            return None

    @property
    def sort_direction(self) -> Optional[SortDirection]:
        try:
            return SortDirection(self.order)
        except ValueError:
            return None


class OrderCreatedEvent(BaseModel):
    order_id: str
    order_number: str
    items: List[OrderItem]
    amount: float
    created_at: datetime


class OrderStatusChangedEvent(BaseModel):
    order_id: str
    order_number: str
    previous_status: OrderStatus
    status: OrderStatus
    restocked: bool = False
