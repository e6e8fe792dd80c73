import json
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from backoffice.core.broker import broker
from backoffice.models import OutboxMessage
from backoffice.repositories.outbox import OutboxRepository
from backoffice.services.outbox_processor import OutboxProcessor


@pytest.mark.asyncio
async def test_create_order_saves_to_outbox(client: AsyncClient, db_session, make_product, order_payload):
    product = await make_product(qty=5, price="10.50")

    response = await client.post("/orders", json=order_payload([(product.id, 2)]))

    assert response.status_code == 201
    order_data = response.json()["data"]

    result = await db_session.execute(select(OutboxMessage))
    outbox_messages = list(result.scalars().all())

    assert len(outbox_messages) == 1
    message = outbox_messages[0]

    assert message.order_id == order_data["id"]
    assert message.event_type == "order.created"
    assert message.published_at is None
    assert message.attempts == 0

    payload = json.loads(message.payload)
    assert payload["order_id"] == order_data["id"]
    assert payload["amount"] == 21.0
    assert payload["items"] == [{"product_id": product.id, "qty": 2, "price": 10.5}]


@pytest.mark.asyncio
async def test_rejected_order_writes_no_outbox_message(client: AsyncClient, db_session, make_product, order_payload):
    product = await make_product(qty=1)

    response = await client.post("/orders", json=order_payload([(product.id, 2)]))

    assert response.status_code == 422
    result = await db_session.execute(select(OutboxMessage))
    assert list(result.scalars().all()) == []


@pytest.mark.asyncio
async def test_outbox_processor_publishes_messages(db_session, mock_broker, test_async_session_maker):
    repository = OutboxRepository(db_session)
    message = await repository.add("order-123", "order.created", '{"order_id": "order-123"}')
    await db_session.commit()

    processor = OutboxProcessor(test_async_session_maker, poll_interval=1, batch_size=10, max_retries=3)
    published = await processor.process_batch()

    assert published == 1
    assert len(mock_broker) == 1
    assert mock_broker[0]["routing_key"] == "order.created"
    assert json.loads(mock_broker[0]["message"].decode()) == {"order_id": "order-123"}

    await db_session.refresh(message)
    assert message.published_at is not None
    assert message.last_error is None


@pytest.mark.asyncio
async def test_outbox_processor_handles_publish_failure(db_session, monkeypatch, test_async_session_maker):
    async def mock_publish_fail(routing_key: str, message: bytes):
        raise ConnectionError("Broker connection failed")

    monkeypatch.setattr(broker, "publish", mock_publish_fail)

    repository = OutboxRepository(db_session)
    message = await repository.add("order-456", "order.created", '{"order_id": "order-456"}')
    await db_session.commit()

    processor = OutboxProcessor(test_async_session_maker, poll_interval=1, batch_size=10, max_retries=3)
    published = await processor.process_batch()

    assert published == 0
    await db_session.refresh(message)
    assert message.published_at is None
    assert message.attempts == 1
    assert "Broker connection failed" in message.last_error


@pytest.mark.asyncio
async def test_outbox_processor_skips_exhausted_messages(db_session, monkeypatch, test_async_session_maker):
    publish_calls = []

    async def mock_publish_track(routing_key: str, message: bytes):
        publish_calls.append(routing_key)

    monkeypatch.setattr(broker, "publish", mock_publish_track)

    db_session.add(OutboxMessage(
        order_id="order-789",
        event_type="order.created",
        payload='{"order_id": "order-789"}',
        created_at=datetime.now(timezone.utc),
        attempts=3
    ))
    await db_session.commit()

    processor = OutboxProcessor(test_async_session_maker, poll_interval=1, batch_size=10, max_retries=3)
    await processor.process_batch()

    assert publish_calls == []


@pytest.mark.asyncio
async def test_outbox_repository_get_pending(db_session):
    repository = OutboxRepository(db_session)

    db_session.add(OutboxMessage(
        order_id="order-1",
        event_type="order.created",
        payload='{"order_id": "order-1"}',
        created_at=datetime.now(timezone.utc),
        published_at=datetime.now(timezone.utc)
    ))
    await repository.add("order-2", "order.created", '{"order_id": "order-2"}')
    await repository.add("order-2", "order.status_changed", '{"order_id": "order-2"}')
    await db_session.commit()

    messages = await repository.get_pending(limit=10)

    assert [msg.event_type for msg in messages] == ["order.created", "order.status_changed"]
    assert all(msg.published_at is None for msg in messages)


@pytest.mark.asyncio
async def test_outbox_cleanup_old_messages(db_session, test_async_session_maker):
    db_session.add_all([
        OutboxMessage(
            order_id="order-old",
            event_type="order.created",
            payload='{"order_id": "order-old"}',
            created_at=datetime.now(timezone.utc) - timedelta(hours=48),
            published_at=datetime.now(timezone.utc) - timedelta(hours=48)
        ),
        OutboxMessage(
            order_id="order-recent",
            event_type="order.created",
            payload='{"order_id": "order-recent"}',
            created_at=datetime.now(timezone.utc),
            published_at=datetime.now(timezone.utc)
        ),
    ])
    await db_session.commit()

    processor = OutboxProcessor(test_async_session_maker)
    deleted_count = await processor.cleanup_old_messages(older_than_hours=24)

    assert deleted_count == 1

    result = await db_session.execute(select(OutboxMessage.order_id))
    assert list(result.scalars().all()) == ["order-recent"]
