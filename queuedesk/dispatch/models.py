from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock, RLock

from .queue import CategoryQueue
from .state import (
    AvailabilityStateMachine,
    EmployeeAvailability,
    StaffKind,
    StationStatus,
    TicketStateMachine,
    TicketStatus,
)
from .timeutils import whole_minutes


@dataclass(slots=True, eq=False)
class Ticket:
    """A single client's claim to service, identified by its generated code."""

    code: str
    category_id: int
    client_id: str
    generated_at: datetime
    status: TicketStatus = TicketStatus.WAITING
    attended_at: datetime | None = None
    completed_at: datetime | None = None
    served_by: str | None = None
    station_number: int | None = None

    def change_status(self, new_status: TicketStatus | None, *, at: datetime) -> bool:
        """Apply a lifecycle transition; invalid requests leave the ticket untouched."""

        if not TicketStateMachine.can_transition(self.status, new_status):
            return False
        if new_status is TicketStatus.IN_PROGRESS:
            self.attended_at = max(at, self.generated_at)
        elif new_status is TicketStatus.COMPLETED:
            self.completed_at = max(at, self.attended_at or self.generated_at)
        self.status = new_status
        return True

    def waiting_time(self, now: datetime) -> int:
        """Whole minutes spent waiting before service started (or so far)."""

        if self.attended_at is not None:
            return whole_minutes(self.generated_at, self.attended_at)
        if self.status is TicketStatus.WAITING:
            return whole_minutes(self.generated_at, now)
        return 0

    def service_time(self, now: datetime) -> int:
        """Whole minutes spent in service (or so far, while in progress)."""

        if self.attended_at is not None and self.completed_at is not None:
            return whole_minutes(self.attended_at, self.completed_at)
        if self.status is TicketStatus.IN_PROGRESS and self.attended_at is not None:
            return whole_minutes(self.attended_at, now)
        return 0

    @property
    def sequence(self) -> int | None:
        _, _, suffix = self.code.rpartition("-")
        return int(suffix) if suffix.isdigit() else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ticket):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)


@dataclass(slots=True, eq=False)
class Category:
    """Class of service with its own FIFO queue and ticket-code prefix."""

    id: int
    name: str
    prefix: str
    description: str = ""
    queue: CategoryQueue = field(default_factory=CategoryQueue)
    employee_ids: list[str] = field(default_factory=list)
    next_sequence: int = 1
    _sequence_lock: Lock = field(default_factory=Lock, init=False, repr=False)

    @property
    def active(self) -> bool:
        return self.queue.active

    def activate(self) -> bool:
        return self.queue.activate()

    def deactivate(self) -> bool:
        return self.queue.deactivate()

    def issue_code(self, width: int = 3) -> str:
        with self._sequence_lock:
            sequence = self.next_sequence
            self.next_sequence += 1
        return f"{self.prefix}-{sequence:0{width}d}"

    def assign_employee(self, employee_id: str | None) -> bool:
        if not employee_id or employee_id in self.employee_ids:
            return False
        self.employee_ids.append(employee_id)
        return True

    def remove_employee(self, employee_id: str) -> bool:
        if employee_id not in self.employee_ids:
            return False
        self.employee_ids.remove(employee_id)
        return True


@dataclass(slots=True, eq=False)
class Station:
    """Physical service point; the supported category order drives assignment."""

    id: int
    number: int
    status: StationStatus = StationStatus.CLOSED
    category_ids: list[int] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status is StationStatus.OPEN

    def open(self, *, staffed: bool) -> bool:
        if not staffed:
            return False
        self.status = StationStatus.OPEN
        return True

    def close(self) -> bool:
        self.status = StationStatus.CLOSED
        return True

    def add_category(self, category_id: int) -> bool:
        if category_id in self.category_ids:
            return False
        self.category_ids.append(category_id)
        return True

    def remove_category(self, category_id: int) -> bool:
        if category_id not in self.category_ids:
            return False
        self.category_ids.remove(category_id)
        return True

    def supports(self, category_id: int) -> bool:
        return category_id in self.category_ids


@dataclass(slots=True, eq=False)
class Employee:
    """Staff member that pulls tickets at a station.

    ``availability`` is BUSY exactly while ``current_ticket`` names an
    IN_PROGRESS ticket; both only change together under ``lock``.
    """

    id: str
    name: str
    password_hash: str = ""
    availability: EmployeeAvailability = EmployeeAvailability.OFFLINE
    current_ticket: str | None = None
    completed_tickets: list[str] = field(default_factory=list)
    kind: StaffKind = field(default=StaffKind.EMPLOYEE, init=False)
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)

    @property
    def lock(self) -> RLock:
        return self._lock

    def resume(self) -> bool:
        return self._change_availability(EmployeeAvailability.AVAILABLE)

    def pause(self) -> bool:
        return self._change_availability(EmployeeAvailability.PAUSED)

    def sign_off(self) -> bool:
        return self._change_availability(EmployeeAvailability.OFFLINE)

    def accept(self, ticket: Ticket, *, at: datetime) -> bool:
        with self._lock:
            if self.availability is not EmployeeAvailability.AVAILABLE or self.current_ticket is not None:
                return False
            if not ticket.change_status(TicketStatus.IN_PROGRESS, at=at):
                return False
            ticket.served_by = self.id
            self.current_ticket = ticket.code
            self.availability = EmployeeAvailability.BUSY
            return True

    def complete(self, ticket: Ticket, *, at: datetime) -> bool:
        with self._lock:
            if self.current_ticket != ticket.code:
                return False
            if not ticket.change_status(TicketStatus.COMPLETED, at=at):
                return False
            self.completed_tickets.append(ticket.code)
            self.current_ticket = None
            self.availability = EmployeeAvailability.AVAILABLE
            return True

    def _change_availability(self, target: EmployeeAvailability) -> bool:
        with self._lock:
            if not AvailabilityStateMachine.can_transition(self.availability, target):
                return False
            self.availability = target
            return True


@dataclass(slots=True, eq=False)
class Administrator:
    id: str
    name: str
    password_hash: str = ""
    access_level: int = 1
    kind: StaffKind = field(default=StaffKind.ADMINISTRATOR, init=False)


StaffMember = Employee | Administrator


@dataclass(slots=True)
class Client:
    id: str
    name: str
    contact: str | None = None
