from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.order import OrderStatus
from backoffice.repositories.order import OrderRepository
from backoffice.repositories.product import ProductRepository
from backoffice.schemas.stats import Analytics, OrderCountPerDay, TopSellingProduct

DAYS_IN_REPORT = 7
TOP_SELLING_LIMIT = 5


class StatsService:
    def __init__(self, session: AsyncSession) -> None:
        self.orders = OrderRepository(session)
        self.products = ProductRepository(session)

    async def get_analytics(self, now: Optional[datetime] = None) -> Analytics:
        now = now or datetime.now(timezone.utc)

        return Analytics(
            total_products=await self.products.count(),
            total_orders=await self.orders.count(),
            pending_orders=await self.orders.count(OrderStatus.PENDING),
            total_revenue=float(await self.orders.total_amount(OrderStatus.COMPLETED)),
            order_count_per_day=await self._order_count_per_day(now),
            top_selling_products=await self._top_selling_products()
        )

    async def _order_count_per_day(self, now: datetime) -> List[OrderCountPerDay]:
        today = now.date()
        first_day = today - timedelta(days=DAYS_IN_REPORT - 1)
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

        counts: Dict[date, int] = Counter(
            created_at.date() for created_at in await self.orders.created_since(since)
        )

        return [
            OrderCountPerDay(date=day.isoformat(), count=counts.get(day, 0))
            for day in (first_day + timedelta(days=offset) for offset in range(DAYS_IN_REPORT))
        ]

    async def _top_selling_products(self) -> List[TopSellingProduct]:
        sold: Counter = Counter()
        async for items in self.orders.iter_items():
            for item in items:
                sold[item["product_id"]] += item["qty"]

        top = sold.most_common(TOP_SELLING_LIMIT)
        products = {product.id: product for product in await self.products.find_many(pid for pid, _ in top)}

        return [
            TopSellingProduct(product_id=pid, name=products[pid].name, qty=qty, image=products[pid].image)
            for pid, qty in top
            if pid in products
        ]
