from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone, tzinfo
from threading import Lock
from typing import Callable, Iterable, Mapping

from .models import Ticket
from .registry import DispatchState
from .state import TicketStatus
from .timeutils import Clock, Period, day_period, ensure_aware, format_duration, month_period, utcnow, week_period

logger = logging.getLogger(__name__)

CategoryNamer = Callable[[int], str]


@dataclass(frozen=True, slots=True)
class OnlineMean:
    """Running mean folded one sample at a time."""

    count: int = 0
    value: float = 0.0

    def updated(self, sample: float) -> "OnlineMean":
        count = self.count + 1
        return OnlineMean(count=count, value=(self.value * (count - 1) + sample) / count)


@dataclass(frozen=True, slots=True)
class ServiceStatistics:
    """Immutable report for one period."""

    period_start: datetime
    period_end: datetime
    generated_tickets: int = 0
    attended_tickets: int = 0
    average_waiting_time: float = 0.0
    average_service_time: float = 0.0
    tickets_by_category: Mapping[str, int] = field(default_factory=dict)
    employee_productivity: Mapping[str, float] = field(default_factory=dict)

    @property
    def formatted_waiting_time(self) -> str:
        return format_duration(round(self.average_waiting_time))

    @property
    def formatted_service_time(self) -> str:
        return format_duration(round(self.average_service_time))


def tickets_per_hour(completed: int, service_minutes: int) -> float:
    if completed <= 0 or service_minutes <= 0:
        return 0.0
    return completed / (service_minutes / 60)


class StatisticsAggregator:
    """Incrementally folds tickets generated inside ``period`` into counters.

    Recording is idempotent per ticket code: the first sighting counts the
    ticket as generated, the first sighting in COMPLETED state folds its
    waiting and service minutes into the online means.
    """

    def __init__(
        self,
        period: Period,
        *,
        category_name: CategoryNamer | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._period = period
        self._category_name = category_name or str
        self._clock = clock
        self._lock = Lock()
        self._seen: set[str] = set()
        self._completed: set[str] = set()
        self._generated = 0
        self._waiting = OnlineMean()
        self._service = OnlineMean()
        self._by_category: dict[str, int] = {}
        self._employee_completed: dict[str, int] = {}
        self._employee_minutes: dict[str, int] = {}

    @property
    def period(self) -> Period:
        return self._period

    def record_ticket(self, ticket: Ticket | None) -> bool:
        if ticket is None or not self._period.contains(ticket.generated_at):
            return False
        now = self._clock()
        changed = False
        with self._lock:
            if ticket.code not in self._seen:
                self._seen.add(ticket.code)
                self._generated += 1
                name = self._category_name(ticket.category_id)
                self._by_category[name] = self._by_category.get(name, 0) + 1
                changed = True
            if ticket.status is TicketStatus.COMPLETED and ticket.code not in self._completed:
                self._completed.add(ticket.code)
                service_minutes = ticket.service_time(now)
                self._waiting = self._waiting.updated(ticket.waiting_time(now))
                self._service = self._service.updated(service_minutes)
                if ticket.served_by:
                    employee_id = ticket.served_by
                    self._employee_completed[employee_id] = self._employee_completed.get(employee_id, 0) + 1
                    self._employee_minutes[employee_id] = self._employee_minutes.get(employee_id, 0) + service_minutes
                changed = True
        return changed

    def record_all(self, tickets: Iterable[Ticket]) -> None:
        for ticket in tickets:
            self.record_ticket(ticket)

    def snapshot(self) -> ServiceStatistics:
        with self._lock:
            return ServiceStatistics(
                period_start=self._period.start,
                period_end=self._period.end,
                generated_tickets=self._generated,
                attended_tickets=len(self._completed),
                average_waiting_time=self._waiting.value,
                average_service_time=self._service.value,
                tickets_by_category=dict(self._by_category),
                employee_productivity={
                    employee_id: tickets_per_hour(count, self._employee_minutes.get(employee_id, 0))
                    for employee_id, count in self._employee_completed.items()
                },
            )


def build_report(
    tickets: Iterable[Ticket],
    period: Period,
    *,
    category_name: CategoryNamer | None = None,
    clock: Clock = utcnow,
) -> ServiceStatistics:
    """Fresh aggregate over one window, independent of any running aggregate.

    Counts and means cover tickets generated in the window; productivity
    covers tickets completed in it.
    """

    pool = list(tickets)
    aggregator = StatisticsAggregator(period, category_name=category_name, clock=clock)
    aggregator.record_all(pool)

    completed: dict[str, int] = {}
    minutes: dict[str, int] = {}
    now = clock()
    for ticket in pool:
        if ticket.status is not TicketStatus.COMPLETED or not ticket.served_by:
            continue
        if not period.contains(ticket.completed_at):
            continue
        completed[ticket.served_by] = completed.get(ticket.served_by, 0) + 1
        minutes[ticket.served_by] = minutes.get(ticket.served_by, 0) + ticket.service_time(now)

    productivity = {
        employee_id: tickets_per_hour(count, minutes.get(employee_id, 0)) for employee_id, count in completed.items()
    }
    return replace(aggregator.snapshot(), employee_productivity=productivity)


class StatisticsService:
    """Owns the running aggregate for the current day and builds period reports."""

    def __init__(
        self,
        state: DispatchState,
        *,
        clock: Clock = utcnow,
        zone: tzinfo = timezone.utc,
    ) -> None:
        self._state = state
        self._clock = clock
        self._zone = zone
        self._lock = Lock()
        self._current = self._new_aggregator(clock())

    def seed(self) -> ServiceStatistics:
        """Rebuild today's aggregate from the tickets already in state."""

        aggregator = self._new_aggregator(self._clock())
        aggregator.record_all(self._tickets())
        with self._lock:
            self._current = aggregator
        snapshot = aggregator.snapshot()
        logger.info(
            "Seeded statistics for %s: %s generated, %s attended",
            snapshot.period_start.date().isoformat(),
            snapshot.generated_tickets,
            snapshot.attended_tickets,
        )
        return snapshot

    def record_ticket(self, ticket: Ticket | None) -> bool:
        return self._current_aggregator().record_ticket(ticket)

    def current_statistics(self) -> ServiceStatistics:
        return self._current_aggregator().snapshot()

    def daily_statistics(self) -> ServiceStatistics:
        return self._report(day_period(self._clock(), self._zone))

    def weekly_statistics(self) -> ServiceStatistics:
        return self._report(week_period(self._clock(), self._zone))

    def monthly_statistics(self) -> ServiceStatistics:
        return self._report(month_period(self._clock(), self._zone))

    def statistics_for_period(self, start: datetime, end: datetime) -> ServiceStatistics | None:
        start, end = ensure_aware(start), ensure_aware(end)
        if end <= start:
            return None
        return self._report(Period(start, end))

    def average_waiting_time_by_category(self, category_id: int) -> float:
        now = self._clock()
        samples = [
            ticket.waiting_time(now)
            for ticket in self._tickets()
            if ticket.category_id == category_id and ticket.attended_at is not None
        ]
        if not samples:
            return 0.0
        return sum(samples) / len(samples)

    def employee_productivity(self, employee_id: str) -> float:
        employee = self._state.get_employee(employee_id)
        if employee is None:
            return 0.0
        now = self._clock()
        completed = [self._state.tickets[code] for code in list(employee.completed_tickets) if code in self._state.tickets]
        return tickets_per_hour(len(completed), sum(ticket.service_time(now) for ticket in completed))

    def employee_productivity_statistics(self) -> dict[str, float]:
        return {employee.id: self.employee_productivity(employee.id) for employee in list(self._state.employees())}

    def _current_aggregator(self) -> StatisticsAggregator:
        now = self._clock()
        with self._lock:
            if not self._current.period.contains(now):
                logger.info("Rolling statistics over to %s", day_period(now, self._zone).start.isoformat())
                self._current = self._new_aggregator(now)
            return self._current

    def _new_aggregator(self, moment: datetime) -> StatisticsAggregator:
        return StatisticsAggregator(day_period(moment, self._zone), category_name=self._category_name, clock=self._clock)

    def _report(self, period: Period) -> ServiceStatistics:
        return build_report(self._tickets(), period, category_name=self._category_name, clock=self._clock)

    def _category_name(self, category_id: int) -> str:
        category = self._state.categories.get(category_id)
        return category.name if category is not None else f"category-{category_id}"

    def _tickets(self) -> list[Ticket]:
        return list(self._state.tickets.values())
