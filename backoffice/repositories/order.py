from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, List, Optional
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.order import Order, OrderStatus
from backoffice.schemas.order import OrderQuery, OrderSortField, SortDirection

# Order numbers outgrow their zero padding, so they compare by length first.
_SORT_COLUMNS = {
    OrderSortField.ORDER_NUMBER: (func.length(Order.order_number), Order.order_number),
    OrderSortField.AMOUNT: (Order.amount,),
    OrderSortField.STATUS: (Order.status,),
    OrderSortField.CUSTOMER_NAME: (func.lower(Order.customer_name),),
}


class OrderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id)
        )
        return result.scalar_one_or_none()

    async def search(self, query: OrderQuery) -> List[Order]:
        stmt = select(Order)

        if query.order_number:
            stmt = stmt.where(Order.order_number.icontains(query.order_number, autoescape=True))
        if query.status:
            stmt = stmt.where(Order.status == query.status)

        field, direction = query.sort_field, query.sort_direction
        if field and direction:
            stmt = stmt.order_by(*(
                column.asc() if direction == SortDirection.ASC else column.desc()
                for column in _SORT_COLUMNS[field]
            ))
        stmt = stmt.order_by(
            Order.created_at.desc(),
            func.length(Order.order_number).desc(),
            Order.order_number.desc()
        )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set_status(self, order_id: str, expected: OrderStatus, status: OrderStatus) -> bool:
        """Move the order to ``status`` only if it is still ``expected``."""
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=status, updated_at=datetime.now(timezone.utc))
            .returning(Order.id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none() is not None

    async def delete(self, order_id: str) -> bool:
        result = await self.session.execute(
            delete(Order).where(Order.id == order_id)
        )
        return result.rowcount > 0

    async def count(self, status: Optional[OrderStatus] = None) -> int:
        stmt = select(func.count()).select_from(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def total_amount(self, status: OrderStatus) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Order.amount), 0)).where(Order.status == status)
        )
        return Decimal(str(result.scalar_one()))

    async def created_since(self, since: datetime) -> List[datetime]:
        result = await self.session.execute(
            select(Order.created_at).where(Order.created_at >= since)
        )
        return list(result.scalars().all())

    async def iter_items(self, batch_size: int = 500) -> AsyncIterator[list]:
        """Yield each order's item list, fetched in batches of ``batch_size``."""
        result = await self.session.stream_scalars(
            select(Order.items).execution_options(yield_per=batch_size)
        )
        async for items in result:
            yield items
