from typing import List, Optional
from pydantic import BaseModel


class OrderCountPerDay(BaseModel):
    date: str
    count: int


class TopSellingProduct(BaseModel):
    product_id: str
    name: str
    qty: int
    image: Optional[str] = None


class Analytics(BaseModel):
    total_products: int
    total_orders: int
    pending_orders: int
    total_revenue: float
    order_count_per_day: List[OrderCountPerDay]
    top_selling_products: List[TopSellingProduct]
