"""Async facade: run one dispatch operation, then flush the store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, TypeVar

from opentelemetry import trace

from queuedesk.db.store import DispatchStore, PersistenceError
from queuedesk.metrics import metrics_registry, register_default_metrics
from queuedesk.metrics.definitions import (
    OPERATION_REJECTIONS,
    STORE_FLUSH_FAILURES,
    STORE_FLUSH_SECONDS,
    TICKET_SERVICE_MINUTES,
    TICKET_WAIT_MINUTES,
    TICKETS_ASSIGNED,
    TICKETS_CANCELLED,
    TICKETS_COMPLETED,
    TICKETS_CREATED,
)
from queuedesk.metrics.registry import MetricsRegistry

from .administration import CategoryService, ClientRegistry, StaffDirectory, StationService
from .dispatcher import Dispatcher
from .models import Administrator, Category, Client, Employee, Station, Ticket
from .notifications import DisplayBoard, NotificationService, TicketNotifier
from .registry import DispatchState
from .statistics import ServiceStatistics, StatisticsService
from .timeutils import Clock, utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ResultT = TypeVar("ResultT")


class QueueDeskService:
    """Owns the loaded state and the collaborators operating on it.

    Every mutating call runs the synchronous core operation and, unless it
    was rejected, flushes the store. A failed flush raises
    :class:`PersistenceError`; the in-memory change stays applied but must be
    treated as not durably committed.
    """

    def __init__(
        self,
        state: DispatchState,
        store: DispatchStore,
        *,
        clock: Clock = utcnow,
        zone: tzinfo = timezone.utc,
        require_open_station: bool = True,
        code_width: int = 3,
        notifier: TicketNotifier | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._state = state
        self._store = store
        self._clock = clock
        self._metrics = register_default_metrics(metrics or metrics_registry)
        self.categories = CategoryService(state)
        self.stations = StationService(state)
        self.staff = StaffDirectory(state)
        self.clients = ClientRegistry(state)
        self.board = DisplayBoard()
        self.statistics = StatisticsService(state, clock=clock, zone=zone)
        self.dispatcher = Dispatcher(
            state,
            statistics=self.statistics,
            notifier=notifier or NotificationService(self.board, client_name=self.clients.client_name),
            clock=clock,
            require_open_station=require_open_station,
            code_width=code_width,
        )

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    def now(self) -> datetime:
        return self._clock()

    # -- tickets -----------------------------------------------------------------

    async def create_ticket(self, client_id: str, category_id: int) -> Ticket | None:
        ticket = await self._run("create_ticket", lambda: self.dispatcher.create_ticket(client_id, category_id))
        if ticket is not None:
            self._count(TICKETS_CREATED, ticket)
        return ticket

    async def assign_next_ticket(self, employee_id: str) -> Ticket | None:
        ticket = await self._run("assign_next_ticket", lambda: self.dispatcher.assign_next_ticket(employee_id))
        if ticket is not None:
            self._count(TICKETS_ASSIGNED, ticket)
        return ticket

    async def complete_ticket(self, ticket_code: str, employee_id: str) -> bool:
        completed = await self._run(
            "complete_ticket", lambda: self.dispatcher.complete_ticket(ticket_code, employee_id)
        )
        ticket = self.dispatcher.get_ticket(ticket_code)
        if completed and ticket is not None:
            self._count(TICKETS_COMPLETED, ticket)
            labels = {"category": self._category_label(ticket)}
            now = self._clock()
            self._metrics.distribution(TICKET_WAIT_MINUTES).observe(ticket.waiting_time(now), labels=labels)
            self._metrics.distribution(TICKET_SERVICE_MINUTES).observe(ticket.service_time(now), labels=labels)
        return completed

    async def cancel_ticket(self, code: str) -> bool:
        cancelled = await self._run("cancel_ticket", lambda: self.dispatcher.cancel_ticket(code))
        ticket = self.dispatcher.get_ticket(code)
        if cancelled and ticket is not None:
            self._count(TICKETS_CANCELLED, ticket)
        return cancelled

    # -- categories --------------------------------------------------------------

    async def create_category(self, name: str, prefix: str, description: str = "") -> Category | None:
        return await self._run("create_category", lambda: self.categories.create_category(name, prefix, description))

    async def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        prefix: str | None = None,
    ) -> bool:
        return await self._run(
            "update_category",
            lambda: self.categories.update_category(category_id, name=name, description=description, prefix=prefix),
        )

    async def activate_category(self, category_id: int) -> bool:
        return await self._run("activate_category", lambda: self.categories.activate_category(category_id))

    async def deactivate_category(self, category_id: int) -> bool:
        return await self._run("deactivate_category", lambda: self.categories.deactivate_category(category_id))

    async def assign_employee_to_category(self, category_id: int, employee_id: str) -> bool:
        return await self._run(
            "assign_employee_to_category", lambda: self.categories.assign_employee(category_id, employee_id)
        )

    async def remove_employee_from_category(self, category_id: int, employee_id: str) -> bool:
        return await self._run(
            "remove_employee_from_category", lambda: self.categories.remove_employee(category_id, employee_id)
        )

    # -- stations ----------------------------------------------------------------

    async def create_station(self, number: int) -> Station | None:
        return await self._run("create_station", lambda: self.stations.create_station(number))

    async def open_station(self, station_id: int) -> bool:
        return await self._run("open_station", lambda: self.stations.open_station(station_id))

    async def close_station(self, station_id: int) -> bool:
        return await self._run("close_station", lambda: self.stations.close_station(station_id))

    async def assign_employee_to_station(self, station_id: int, employee_id: str) -> bool:
        return await self._run(
            "assign_employee_to_station", lambda: self.stations.assign_employee(station_id, employee_id)
        )

    async def release_station_employee(self, station_id: int) -> bool:
        return await self._run("release_station_employee", lambda: self.stations.release_employee(station_id))

    async def add_station_category(self, station_id: int, category_id: int) -> bool:
        return await self._run("add_station_category", lambda: self.stations.add_category(station_id, category_id))

    async def remove_station_category(self, station_id: int, category_id: int) -> bool:
        return await self._run(
            "remove_station_category", lambda: self.stations.remove_category(station_id, category_id)
        )

    # -- staff and clients -------------------------------------------------------

    async def register_employee(self, employee_id: str, name: str, password: str) -> Employee | None:
        return await self._run(
            "register_employee", lambda: self.staff.register_employee(employee_id, name, password)
        )

    async def register_administrator(
        self, administrator_id: str, name: str, password: str, access_level: int = 1
    ) -> Administrator | None:
        return await self._run(
            "register_administrator",
            lambda: self.staff.register_administrator(administrator_id, name, password, access_level),
        )

    async def remove_staff(self, staff_id: str) -> bool:
        return await self._run("remove_staff", lambda: self.staff.remove_staff(staff_id))

    async def resume(self, employee_id: str) -> bool:
        return await self._run("resume", lambda: self.staff.resume(employee_id))

    async def pause(self, employee_id: str) -> bool:
        return await self._run("pause", lambda: self.staff.pause(employee_id))

    async def sign_off(self, employee_id: str) -> bool:
        return await self._run("sign_off", lambda: self.staff.sign_off(employee_id))

    async def register_client(self, client_id: str, name: str, contact: str | None = None) -> Client | None:
        return await self._run("register_client", lambda: self.clients.register_client(client_id, name, contact))

    # -- lifecycle ---------------------------------------------------------------

    async def bootstrap_administrator(self, administrator_id: str | None, password: str | None, name: str) -> bool:
        """Create the first administrator when the directory has none."""

        if not administrator_id or not password:
            return False
        if any(True for _ in self._state.administrators()):
            return False
        administrator = await self.register_administrator(administrator_id, name, password)
        if administrator is not None:
            logger.info("Bootstrapped administrator %s", administrator.id)
        return administrator is not None

    def seed_statistics(self) -> ServiceStatistics:
        return self.statistics.seed()

    async def flush(self) -> None:
        try:
            with self._metrics.time_distribution(STORE_FLUSH_SECONDS):
                await self._store.flush(self._state)
        except PersistenceError:
            self._metrics.counter(STORE_FLUSH_FAILURES).inc()
            raise

    async def _run(self, operation: str, action: Callable[[], ResultT]) -> ResultT:
        with tracer.start_as_current_span(f"queuedesk.{operation}") as span:
            result = action()
            if result is None or result is False:
                span.set_attribute("queuedesk.rejected", True)
                self._metrics.counter(OPERATION_REJECTIONS).inc(labels={"operation": operation})
                return result
            await self.flush()
            return result

    def _count(self, metric: str, ticket: Ticket) -> None:
        self._metrics.counter(metric).inc(labels={"category": self._category_label(ticket)})

    def _category_label(self, ticket: Ticket) -> str:
        category = self._state.categories.get(ticket.category_id)
        return category.prefix if category is not None else str(ticket.category_id)
