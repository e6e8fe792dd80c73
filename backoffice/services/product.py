import logging
import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFoundError
from backoffice.models.product import Product, ProductCategory
from backoffice.repositories.product import ProductRepository
from backoffice.schemas.product import ProductCreate, ProductResponse, ProductUpdate

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = ProductRepository(session)

    async def create_product(self, product_data: ProductCreate) -> ProductResponse:
        product = Product(id=str(uuid.uuid4()), **product_data.model_dump())
        created = await self.repository.create(product)
        await self.session.commit()

        logger.info(f"Product created: {created.id}")
        return self._to_response(created)

    async def list_products(
        self,
        name: Optional[str] = None,
        category: Optional[ProductCategory] = None
    ) -> List[ProductResponse]:
        products = await self.repository.search(name=name, category=category)
        return [self._to_response(product) for product in products]

    async def get_product(self, product_id: str) -> ProductResponse:
        product = await self._get_or_raise(product_id)
        return self._to_response(product)

    async def update_product(self, product_id: str, product_data: ProductUpdate) -> ProductResponse:
        product = await self._get_or_raise(product_id)

        for field, value in product_data.model_dump().items():
            setattr(product, field, value)

        updated = await self.repository.update(product)
        await self.session.commit()

        logger.info(f"Product updated: {product_id}")
        return self._to_response(updated)

    async def delete_product(self, product_id: str) -> bool:
        await self._get_or_raise(product_id)

        deleted = await self.repository.delete(product_id)
        await self.session.commit()

        logger.info(f"Product deleted: {product_id}")
        return deleted

    async def _get_or_raise(self, product_id: str) -> Product:
        product = await self.repository.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product")
        return product

    @staticmethod
    def _to_response(product: Product) -> ProductResponse:
        return ProductResponse(
            id=product.id,
            name=product.name,
            description=product.description,
            qty=product.qty,
            price=float(product.price),
            category=product.category,
            image=product.image,
            created_at=product.created_at,
            updated_at=product.updated_at
        )
