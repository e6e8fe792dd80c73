import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    OrderConflictError,
    UnprocessableOrderError,
)
from backoffice.models.order import Order, OrderStatus
from backoffice.models.product import Product
from backoffice.repositories.order import OrderRepository
from backoffice.repositories.order_number import OrderNumberRepository
from backoffice.repositories.outbox import OutboxRepository
from backoffice.repositories.product import ProductRepository
from backoffice.schemas.order import (
    OrderCreate,
    OrderCreatedEvent,
    OrderItem,
    OrderItemResponse,
    OrderQuery,
    OrderResponse,
    OrderStatusChangedEvent,
)

logger = logging.getLogger(__name__)


class OrderService:
    """Order placement, status changes and the stock movements they imply.

    Every write path runs in a single transaction on ``session``: the order
    number, the order row, the stock reservations and the outbox event are
    committed together or not at all.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = OrderRepository(session)
        self.products = ProductRepository(session)
        self.order_numbers = OrderNumberRepository(session)
        self.outbox = OutboxRepository(session)

    async def create_order(self, order_data: OrderCreate) -> OrderResponse:
        requested: Dict[str, int] = {}
        for item in order_data.items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.qty

        try:
            products = await self.products.find_many(requested.keys())

            if len(products) < len(requested):
                missing = set(requested) - {product.id for product in products}
                logger.warning(f"Order rejected, unknown products: {sorted(missing)}")
                raise UnprocessableOrderError()

            # Checked for every item before anything is written.
            for product in products:
                if product.qty < requested[product.id]:
                    logger.warning(
                        f"Order rejected, insufficient stock for product {product.id} "
                        f"(requested {requested[product.id]}, available {product.qty})"
                    )
                    raise UnprocessableOrderError()

            prices = {product.id: product.price for product in products}
            amount = sum(
                (prices[item.product_id] * item.qty for item in order_data.items),
                Decimal("0")
            )

            order_number = await self.order_numbers.next()
            now = datetime.now(timezone.utc)

            order = Order(
                id=str(uuid.uuid4()),
                order_number=order_number,
                items=[
                    {"product_id": item.product_id, "qty": item.qty, "price": float(prices[item.product_id])}
                    for item in order_data.items
                ],
                amount=amount,
                status=OrderStatus.PENDING,
                note=order_data.note,
                customer_name=order_data.customer_name,
                phone_number=order_data.phone_number,
                email=order_data.email,
                billing_address=order_data.billing_address.model_dump(),
                shipping_address=order_data.shipping_address.model_dump() if order_data.shipping_address else None,
                created_at=now,
                updated_at=now
            )
            created_order = await self.repository.create(order)

            # Rows are locked in id order so concurrent writers cannot deadlock.
            for product_id, qty in sorted(requested.items()):
                # Stock may have moved since the availability check.
                if await self.products.reserve(product_id, qty) is None:
                    logger.warning(f"Order rejected, stock for product {product_id} was taken concurrently")
                    raise UnprocessableOrderError()

            event = OrderCreatedEvent(
                order_id=created_order.id,
                order_number=created_order.order_number,
                items=[OrderItem(**item) for item in created_order.items],
                amount=float(created_order.amount),
                created_at=created_order.created_at
            )
            await self.outbox.add(created_order.id, "order.created", event.model_dump_json())

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Order created: {created_order.id}, number: {created_order.order_number}")

        return self._to_response(created_order, {product.id: product for product in products})

    async def get_order(self, order_id: str) -> OrderResponse:
        order = await self._get_or_raise(order_id)
        return self._to_response(order, await self._products_of([order]))

    async def list_orders(self, query: OrderQuery) -> List[OrderResponse]:
        orders = await self.repository.search(query)
        products = await self._products_of(orders)
        return [self._to_response(order, products) for order in orders]

    async def update_status(self, order_id: str, status: OrderStatus) -> OrderResponse:
        order = await self._get_or_raise(order_id)
        previous = order.status

        if previous == status:
            return self._to_response(order, await self._products_of([order]))

        if not previous.can_transition_to(status):
            raise InvalidStatusTransitionError(previous.value, status.value)

        try:
            # The guard on the previous status makes a racing duplicate request
            # lose here, so the stock reversal below runs once per order.
            if not await self.repository.compare_and_set_status(order.id, previous, status):
                raise OrderConflictError()

            restocked = False
            if status == OrderStatus.CANCELLED:
                await self._restock(order)
                restocked = True

            event = OrderStatusChangedEvent(
                order_id=order.id,
                order_number=order.order_number,
                previous_status=previous,
                status=status,
                restocked=restocked
            )
            await self.outbox.add(order.id, "order.status_changed", event.model_dump_json())

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(order)
        logger.info(f"Order updated: {order.id}, status: {previous.value} -> {order.status.value}")

        return self._to_response(order, await self._products_of([order]))

    async def delete_order(self, order_id: str) -> bool:
        order = await self._get_or_raise(order_id)

        try:
            deleted = await self.repository.delete(order.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Order deleted: {order_id}")
        return deleted

    async def _restock(self, order: Order) -> None:
        returned: Dict[str, int] = {}
        for item in order.items:
            returned[item["product_id"]] = returned.get(item["product_id"], 0) + item["qty"]

        # Same id order as reservation.
        for product_id, qty in sorted(returned.items()):
            product = await self.products.adjust_quantity(product_id, qty)
            if product is None:
                logger.warning(
                    f"Product {product_id} no longer exists, "
                    f"cannot restore {qty} units for order {order.id}"
                )

    async def _products_of(self, orders: Iterable[Order]) -> Dict[str, Product]:
        ids = {item["product_id"] for order in orders for item in order.items}
        return {product.id: product for product in await self.products.find_many(ids)}

    async def _get_or_raise(self, order_id: str) -> Order:
        order = await self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order")
        return order

    @staticmethod
    def _to_response(order: Order, products: Dict[str, Product]) -> OrderResponse:
        items = []
        for item in order.items:
            product = products.get(item["product_id"])
            items.append(OrderItemResponse(
                **item,
                name=product.name if product else None,
                image=product.image if product else None
            ))

        return OrderResponse(
            id=order.id,
            order_number=order.order_number,
            items=items,
            amount=float(order.amount),
            status=order.status,
            note=order.note,
            customer_name=order.customer_name,
            phone_number=order.phone_number,
            email=order.email,
            billing_address=order.billing_address,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
