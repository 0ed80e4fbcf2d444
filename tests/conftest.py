from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from queuedesk.db.store import InMemoryDispatchStore
from queuedesk.dispatch.dispatcher import Dispatcher
from queuedesk.dispatch.models import Category, Employee, Station
from queuedesk.dispatch.registry import DispatchState
from queuedesk.dispatch.service import QueueDeskService
from queuedesk.dispatch.state import EmployeeAvailability, StationStatus
from queuedesk.dispatch.statistics import StatisticsService
from queuedesk.metrics import MetricsRegistry


class FakeClock:
    """Deterministic clock advanced explicitly by tests."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    # a Wednesday
    return FakeClock(datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def state() -> DispatchState:
    """GEN and PAY categories, one open station supporting [GEN, PAY] staffed by ``emp-1``."""

    dispatch_state = DispatchState()
    dispatch_state.categories[1] = Category(id=1, name="General", prefix="GEN")
    dispatch_state.categories[2] = Category(id=2, name="Payments", prefix="PAY")
    dispatch_state.stations[1] = Station(id=1, number=1, status=StationStatus.OPEN, category_ids=[1, 2])
    employee = Employee(id="emp-1", name="Ada", availability=EmployeeAvailability.AVAILABLE)
    dispatch_state.staff[employee.id] = employee
    dispatch_state.roster.bind(1, employee.id)
    return dispatch_state


@pytest.fixture
def dispatcher(state: DispatchState, clock: FakeClock) -> Dispatcher:
    return Dispatcher(state, statistics=StatisticsService(state, clock=clock), clock=clock)


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def store(state: DispatchState) -> InMemoryDispatchStore:
    return InMemoryDispatchStore(state)


@pytest.fixture
def queue_service(
    state: DispatchState, store: InMemoryDispatchStore, clock: FakeClock, metrics: MetricsRegistry
) -> QueueDeskService:
    return QueueDeskService(state, store, clock=clock, metrics=metrics)
