from datetime import datetime, timezone
from typing import Iterable, List, Optional
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.product import Product, ProductCategory


class ProductRepository:
    """Product records and the stock ledger.

    Quantity changes are single UPDATE statements evaluated by the database, so
    concurrent callers never overwrite each other's adjustments.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, product: Product) -> Product:
        self.session.add(product)
        await self.session.flush()
        await self.session.refresh(product)
        return product

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self.session.execute(
            select(Product).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def find_many(self, product_ids: Iterable[str]) -> List[Product]:
        ids = set(product_ids)
        if not ids:
            return []

        result = await self.session.execute(
            select(Product).where(Product.id.in_(ids))
        )
        return list(result.scalars().all())

    async def search(self, name: Optional[str] = None, category: Optional[ProductCategory] = None) -> List[Product]:
        stmt = select(Product)
        if name:
            stmt = stmt.where(Product.name.icontains(name, autoescape=True))
        if category:
            stmt = stmt.where(Product.category == category)

        result = await self.session.execute(stmt.order_by(func.lower(Product.name)))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Product))
        return result.scalar_one()

    async def adjust_quantity(self, product_id: str, delta: int) -> Optional[Product]:
        """Apply ``delta`` to the stored quantity. No floor check; returns None for unknown ids."""
        result = await self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(qty=Product.qty + delta, updated_at=datetime.now(timezone.utc))
            .returning(Product.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            return None
        return await self._reload(product_id)

    async def reserve(self, product_id: str, qty: int) -> Optional[Product]:
        """Decrement stock by ``qty`` only if enough remains. None means nothing was reserved."""
        result = await self.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.qty >= qty)
            .values(qty=Product.qty - qty, updated_at=datetime.now(timezone.utc))
            .returning(Product.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            return None
        return await self._reload(product_id)

    async def update(self, product: Product) -> Product:
        await self.session.flush()
        await self.session.refresh(product)
        return product

    async def delete(self, product_id: str) -> bool:
        result = await self.session.execute(
            delete(Product).where(Product.id == product_id)
        )
        return result.rowcount > 0

    async def _reload(self, product_id: str) -> Optional[Product]:
        return await self.session.get(Product, product_id, populate_existing=True)
