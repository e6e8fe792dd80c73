from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.models.product import ProductCategory
from backoffice.services.product import ProductService
from backoffice.schemas.common import ApiResponse
from backoffice.schemas.product import ProductCreate, ProductResponse, ProductUpdate

router = APIRouter(prefix="/products", tags=["products"])


def get_product_service(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(db)


@router.post("", response_model=ApiResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    service: ProductService = Depends(get_product_service)
) -> ApiResponse[ProductResponse]:
    product = await service.create_product(product_data)
    return ApiResponse(data=product, message="Product created successfully")


@router.get("", response_model=ApiResponse[List[ProductResponse]])
async def list_products(
    name: Optional[str] = None,
    category: Optional[ProductCategory] = None,
    service: ProductService = Depends(get_product_service)
) -> ApiResponse[List[ProductResponse]]:
    return ApiResponse(data=await service.list_products(name=name, category=category))


@router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service)
) -> ApiResponse[ProductResponse]:
    return ApiResponse(data=await service.get_product(product_id))


@router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    service: ProductService = Depends(get_product_service)
) -> ApiResponse[ProductResponse]:
    product = await service.update_product(product_id, product_data)
    return ApiResponse(data=product, message="Product updated successfully")


@router.delete("/{product_id}", response_model=ApiResponse[None])
async def delete_product(
    product_id: str,
    service: ProductService = Depends(get_product_service)
) -> ApiResponse[None]:
    await service.delete_product(product_id)
    return ApiResponse(data=None, message="Product deleted successfully")
