from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from backoffice.models.product import ProductCategory


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    qty: int = Field(ge=0)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category: ProductCategory
    image: Optional[str] = Field(default=None, max_length=500)


class ProductUpdate(ProductCreate):
    pass


class ProductResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    qty: int
    price: float
    category: ProductCategory
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
