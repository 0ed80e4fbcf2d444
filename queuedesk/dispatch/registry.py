from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterator, Mapping

from .models import Administrator, Category, Client, Employee, Station, StaffMember, Ticket
from .queue import CategoryQueue
from .state import EmployeeAvailability, StationStatus, TicketStatus

logger = logging.getLogger(__name__)


class StationRoster:
    """Owns the station to employee binding.

    Stations and employees never reference each other directly; the reverse
    index is kept inside this object so both directions change together.
    """

    def __init__(self, bindings: Mapping[int, str] | None = None) -> None:
        self._employee_by_station: dict[int, str] = {}
        self._station_by_employee: dict[str, int] = {}
        self._lock = Lock()
        for station_id, employee_id in (bindings or {}).items():
            self.bind(station_id, employee_id)

    def bind(self, station_id: int, employee_id: str) -> int | None:
        """Attach ``employee_id`` to ``station_id``.

        Returns the station the employee was previously attached to, if it was
        a different one. Any employee already at ``station_id`` is unbound.
        """

        with self._lock:
            previous_station = self._station_by_employee.pop(employee_id, None)
            if previous_station is not None:
                self._employee_by_station.pop(previous_station, None)
            displaced = self._employee_by_station.pop(station_id, None)
            if displaced is not None:
                self._station_by_employee.pop(displaced, None)
            self._employee_by_station[station_id] = employee_id
            self._station_by_employee[employee_id] = station_id
        if previous_station == station_id:
            return None
        return previous_station

    def unbind_station(self, station_id: int) -> str | None:
        with self._lock:
            employee_id = self._employee_by_station.pop(station_id, None)
            if employee_id is not None:
                self._station_by_employee.pop(employee_id, None)
        return employee_id

    def unbind_employee(self, employee_id: str) -> int | None:
        with self._lock:
            station_id = self._station_by_employee.pop(employee_id, None)
            if station_id is not None:
                self._employee_by_station.pop(station_id, None)
        return station_id

    def employee_at(self, station_id: int) -> str | None:
        return self._employee_by_station.get(station_id)

    def station_of(self, employee_id: str) -> int | None:
        return self._station_by_employee.get(employee_id)

    def bindings(self) -> dict[int, str]:
        with self._lock:
            return dict(self._employee_by_station)

    def __len__(self) -> int:
        return len(self._employee_by_station)


@dataclass(slots=True)
class DispatchState:
    """Every in-memory collection the dispatcher works on."""

    categories: dict[int, Category] = field(default_factory=dict)
    stations: dict[int, Station] = field(default_factory=dict)
    staff: dict[str, StaffMember] = field(default_factory=dict)
    clients: dict[str, Client] = field(default_factory=dict)
    tickets: dict[str, Ticket] = field(default_factory=dict)
    roster: StationRoster = field(default_factory=StationRoster)

    def employees(self) -> Iterator[Employee]:
        return (member for member in self.staff.values() if isinstance(member, Employee))

    def administrators(self) -> Iterator[Administrator]:
        return (member for member in self.staff.values() if isinstance(member, Administrator))

    def get_employee(self, employee_id: str) -> Employee | None:
        member = self.staff.get(employee_id)
        return member if isinstance(member, Employee) else None

    def station_for(self, employee_id: str) -> Station | None:
        station_id = self.roster.station_of(employee_id)
        if station_id is None:
            return None
        return self.stations.get(station_id)

    def resolve_references(self) -> None:
        """Re-link a freshly loaded state.

        A raw load only carries ids. This drops links to entities that no
        longer exist, rebuilds every category queue from its WAITING tickets
        in arrival order and repairs employee availability so BUSY always
        matches an IN_PROGRESS ticket.
        """

        self._resolve_roster()
        self._resolve_stations()
        self._resolve_categories()
        self._resolve_employees()

    def _resolve_roster(self) -> None:
        for station_id, employee_id in self.roster.bindings().items():
            if station_id not in self.stations or self.get_employee(employee_id) is None:
                logger.warning("Dropping stale station binding %s -> %s", station_id, employee_id)
                self.roster.unbind_station(station_id)

    def _resolve_stations(self) -> None:
        for station in self.stations.values():
            station.category_ids = [
                category_id for category_id in dict.fromkeys(station.category_ids) if category_id in self.categories
            ]
            if station.status is StationStatus.OPEN and self.roster.employee_at(station.id) is None:
                station.status = StationStatus.CLOSED

    def _resolve_categories(self) -> None:
        waiting: dict[int, list[Ticket]] = {category_id: [] for category_id in self.categories}
        highest: dict[int, int] = {}
        for ticket in self.tickets.values():
            sequence = ticket.sequence
            if sequence is not None:
                highest[ticket.category_id] = max(highest.get(ticket.category_id, 0), sequence)
            if ticket.status is TicketStatus.WAITING and ticket.category_id in waiting:
                waiting[ticket.category_id].append(ticket)

        for category in self.categories.values():
            pending = sorted(
                waiting[category.id],
                key=lambda ticket: (ticket.generated_at, ticket.sequence or 0, ticket.code),
            )
            category.queue = CategoryQueue(pending, active=category.active)
            category.employee_ids = [
                employee_id
                for employee_id in dict.fromkeys(category.employee_ids)
                if self.get_employee(employee_id) is not None
            ]
            category.next_sequence = max(category.next_sequence, highest.get(category.id, 0) + 1)

    def _resolve_employees(self) -> None:
        holders: dict[str, Ticket] = {}
        for ticket in self.tickets.values():
            if ticket.status is TicketStatus.IN_PROGRESS and ticket.served_by:
                holders[ticket.served_by] = ticket

        for employee in self.employees():
            held = holders.get(employee.id)
            if held is not None:
                employee.current_ticket = held.code
                employee.availability = EmployeeAvailability.BUSY
            else:
                employee.current_ticket = None
                if employee.availability is EmployeeAvailability.BUSY:
                    employee.availability = EmployeeAvailability.AVAILABLE
            employee.completed_tickets = [code for code in employee.completed_tickets if code in self.tickets]
