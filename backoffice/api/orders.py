from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.models.order import OrderStatus
from backoffice.services.order import OrderService
from backoffice.schemas.common import ApiResponse
from backoffice.schemas.order import OrderCreate, OrderQuery, OrderResponse, OrderStatusUpdate

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service)
) -> ApiResponse[OrderResponse]:
    order = await service.create_order(order_data)
    return ApiResponse(
        data=order,
        message="Your order has been placed successfully. Thank you for choosing our service"
    )


@router.get("", response_model=ApiResponse[List[OrderResponse]])
async def list_orders(
    order_number: Optional[str] = Query(default=None, alias="orderNumber"),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    order_by: Optional[str] = Query(default=None, alias="orderBy"),
    order: Optional[str] = Query(default=None),
    service: OrderService = Depends(get_order_service)
) -> ApiResponse[List[OrderResponse]]:
    query = OrderQuery(order_number=order_number, status=order_status, order_by=order_by, order=order)
    return ApiResponse(data=await service.list_orders(query))


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service)
) -> ApiResponse[OrderResponse]:
    return ApiResponse(data=await service.get_order(order_id))


@router.patch("/{order_id}", response_model=ApiResponse[OrderResponse])
async def update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service)
) -> ApiResponse[OrderResponse]:
    order = await service.update_status(order_id, status_data.status)
    return ApiResponse(data=order, message="Order status updated successfully")


@router.delete("/{order_id}", response_model=ApiResponse[None])
async def delete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service)
) -> ApiResponse[None]:
    await service.delete_order(order_id)
    return ApiResponse(data=None, message="Order deleted successfully")
