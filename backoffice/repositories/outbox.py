from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.outbox import OutboxMessage


class OutboxRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, order_id: str, event_type: str, payload: str) -> OutboxMessage:
        message = OutboxMessage(
            order_id=order_id,
            event_type=event_type,
            payload=payload,
            created_at=datetime.now(timezone.utc)
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def get_by_id(self, message_id: int) -> Optional[OutboxMessage]:
        result = await self.session.execute(
            select(OutboxMessage).where(OutboxMessage.id == message_id)
        )
        return result.scalar_one_or_none()

    async def get_pending(self, limit: int = 100, max_attempts: Optional[int] = None) -> List[OutboxMessage]:
        stmt = select(OutboxMessage).where(OutboxMessage.published_at.is_(None))
        if max_attempts is not None:
            stmt = stmt.where(OutboxMessage.attempts < max_attempts)

        result = await self.session.execute(
            stmt.order_by(OutboxMessage.created_at, OutboxMessage.id).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_as_published(self, message: OutboxMessage) -> OutboxMessage:
        message.published_at = datetime.now(timezone.utc)
        message.last_error = None
        await self.session.flush()
        return message

    async def mark_as_failed(self, message: OutboxMessage, error: str) -> OutboxMessage:
        message.attempts += 1
        message.last_error = error
        await self.session.flush()
        return message

    async def delete_published(self, older_than_hours: int = 24) -> int:
        cutoff_time = datetime.now(timezone.utc) - timedelta(hours=older_than_hours)

        result = await self.session.execute(
            delete(OutboxMessage)
            .where(OutboxMessage.published_at.isnot(None))
            .where(OutboxMessage.published_at < cutoff_time)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount
