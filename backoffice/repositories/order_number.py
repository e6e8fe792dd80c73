from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import settings
from backoffice.models.order import LastOrderNumber

COUNTER_ID = 1

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def format_order_number(number: int, width: Optional[int] = None) -> str:
    return str(number).zfill(width or settings.order_number_width)


class OrderNumberRepository:
    """Durable order-number counter.

    The increment is one ``UPDATE ... RETURNING`` statement, so two creators can
    never read the same value. It runs in the caller's transaction; the row lock
    it takes is held until that transaction ends.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def next(self) -> str:
        number = await self._increment()
        if number is None:
            await self._ensure_counter()
            number = await self._increment()
        return format_order_number(number)

    async def current(self) -> int:
        result = await self.session.execute(
            select(LastOrderNumber.number).where(LastOrderNumber.id == COUNTER_ID)
        )
        return result.scalar_one_or_none() or 0

    async def _increment(self) -> Optional[int]:
        result = await self.session.execute(
            update(LastOrderNumber)
            .where(LastOrderNumber.id == COUNTER_ID)
            .values(number=LastOrderNumber.number + 1)
            .returning(LastOrderNumber.number)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def _ensure_counter(self) -> None:
        dialect = self.session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for order numbers: {dialect}")

        await self.session.execute(
            insert(LastOrderNumber)
            .values(id=COUNTER_ID, number=0)
            .on_conflict_do_nothing(index_elements=["id"])
        )
