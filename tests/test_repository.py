import asyncio
import uuid

import pytest

from events.models import EventNotFoundError
from events.repository import EventRepository, EventStoreError
from tests.fakes import FakePool, make_event


@pytest.mark.anyio
async def test_create_binds_every_field_as_a_parameter():
    pool = FakePool()
    event = make_event(title="Robert'); DROP TABLE events;--", description="notes")

    await EventRepository(pool).create(event)

    sql, args = pool.calls[-1]
    assert "$1, $2, $3, $4, $5, $6" in sql
    assert event.title not in sql
    assert args == (
        event.id,
        event.title,
        event.description,
        event.start_time,
        event.end_time,
        event.created_at,
    )


@pytest.mark.anyio
async def test_create_wraps_driver_failures():
    pool = FakePool(fail_with=OSError("connection reset"))

    with pytest.raises(EventStoreError) as excinfo:
        await EventRepository(pool).create(make_event())

    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.anyio
async def test_get_all_returns_empty_list_for_empty_table():
    assert await EventRepository(FakePool()).get_all() == []


@pytest.mark.anyio
async def test_get_all_orders_by_start_time():
    pool = FakePool()
    repo = EventRepository(pool)
    for hour in (15, 9, 12):
        await repo.create(make_event(start_hour=hour))

    events = await repo.get_all()

    assert "ORDER BY start_time ASC" in pool.calls[-1][0]
    assert [e.start_time.hour for e in events] == [9, 12, 15]


@pytest.mark.anyio
async def test_get_all_wraps_driver_failures():
    with pytest.raises(EventStoreError):
        await EventRepository(FakePool(fail_with=OSError("boom"))).get_all()


@pytest.mark.anyio
async def test_get_by_id_round_trips_all_fields():
    repo = EventRepository(FakePool())
    event = make_event(description=None)
    await repo.create(event)

    assert await repo.get_by_id(event.id) == event


@pytest.mark.anyio
async def test_get_by_id_raises_not_found_for_unknown_id():
    with pytest.raises(EventNotFoundError):
        await EventRepository(FakePool()).get_by_id(uuid.uuid4())


@pytest.mark.anyio
async def test_get_by_id_wraps_other_failures_as_store_errors():
    with pytest.raises(EventStoreError) as excinfo:
        await EventRepository(FakePool(fail_with=OSError("boom"))).get_by_id(uuid.uuid4())

    assert not isinstance(excinfo.value, EventNotFoundError)


@pytest.mark.anyio
async def test_cancellation_is_not_wrapped():
    """A caller's deadline must surface as a timeout, not as a store error."""
    repo = EventRepository(FakePool(delay_s=1.0))

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(repo.get_all(), timeout=0.01)
