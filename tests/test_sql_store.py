from datetime import timedelta

import pytest
import pytest_asyncio

from queuedesk.db.store import SqlDispatchStore
from queuedesk.dispatch.administration import StaffDirectory
from queuedesk.dispatch.dispatcher import Dispatcher
from queuedesk.dispatch.models import Client
from queuedesk.dispatch.state import EmployeeAvailability, StationStatus, TicketStatus


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SqlDispatchStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'queuedesk.db'}")
    await store.ensure_schema()
    try:
        yield store
    finally:
        await store.dispose()


@pytest.mark.asyncio
async def test_empty_database_loads_empty_state(sql_store):
    state = await sql_store.load()

    assert state.categories == {}
    assert state.tickets == {}
    assert len(state.roster) == 0


@pytest.mark.asyncio
async def test_round_trip_restores_queues_and_bindings(sql_store, state, clock):
    dispatcher = Dispatcher(state, clock=clock)
    state.clients["client-1"] = Client(id="client-1", name="Lin", contact="lin@example.com")
    first = dispatcher.create_ticket("client-1", 1)
    clock.advance(minutes=1)
    second = dispatcher.create_ticket("client-2", 1)
    clock.advance(minutes=1)
    third = dispatcher.create_ticket("client-3", 1)
    clock.advance(minutes=5)
    served = dispatcher.assign_next_ticket("emp-1")
    assert served is first
    StaffDirectory(state).register_administrator("admin", "Root", "pw")

    await sql_store.flush(state)
    loaded = await sql_store.load()

    category = loaded.categories[1]
    assert [ticket.code for ticket in category.queue.peek_all()] == [second.code, third.code]
    assert category.next_sequence == 4
    assert loaded.roster.bindings() == {1: "emp-1"}
    assert loaded.stations[1].status is StationStatus.OPEN
    assert loaded.stations[1].category_ids == [1, 2]

    employee = loaded.get_employee("emp-1")
    assert employee.availability is EmployeeAvailability.BUSY
    assert employee.current_ticket == first.code

    restored = loaded.tickets[first.code]
    assert restored.status is TicketStatus.IN_PROGRESS
    assert restored.attended_at == first.generated_at + timedelta(minutes=7)
    assert restored.attended_at.tzinfo is not None
    assert restored.station_number == 1
    assert loaded.clients["client-1"].contact == "lin@example.com"
    assert StaffDirectory(loaded).authenticate("admin", "pw") is not None


@pytest.mark.asyncio
async def test_codes_keep_increasing_after_reload(sql_store, state, clock):
    dispatcher = Dispatcher(state, clock=clock)
    for client in ("a", "b"):
        dispatcher.create_ticket(client, 2)
    await sql_store.flush(state)

    loaded = await sql_store.load()
    ticket = Dispatcher(loaded, clock=clock).create_ticket("c", 2)

    assert ticket.code == "PAY-003"


@pytest.mark.asyncio
async def test_flush_removes_deleted_staff(sql_store, state):
    directory = StaffDirectory(state)
    directory.register_employee("emp-2", "Grace", "pw")
    await sql_store.flush(state)

    assert directory.remove_staff("emp-2")
    await sql_store.flush(state)
    loaded = await sql_store.load()

    assert set(loaded.staff) == {"emp-1"}


@pytest.mark.asyncio
async def test_flush_updates_existing_rows(sql_store, state):
    await sql_store.flush(state)
    state.categories[2].deactivate()
    state.roster.unbind_station(1)
    state.stations[1].close()

    await sql_store.flush(state)
    loaded = await sql_store.load()

    assert not loaded.categories[2].active
    assert loaded.roster.bindings() == {}
    assert loaded.stations[1].status is StationStatus.CLOSED
