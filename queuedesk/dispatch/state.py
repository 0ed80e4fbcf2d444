from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EmployeeAvailability(str, Enum):
    """Availability of an employee to take the next ticket."""

    OFFLINE = "offline"
    AVAILABLE = "available"
    BUSY = "busy"
    PAUSED = "paused"


class StationStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class StaffKind(str, Enum):
    """Discriminant of the staff tagged union."""

    EMPLOYEE = "employee"
    ADMINISTRATOR = "administrator"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Transitions only move forward; COMPLETED and CANCELLED are terminal and a
    ticket can only be cancelled while it is still waiting.
    """

    _TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.WAITING: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.COMPLETED}),
        TicketStatus.COMPLETED: frozenset(),
        TicketStatus.CANCELLED: frozenset(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.WAITING

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus | None) -> bool:
        if new is None:
            return False
        return new in cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return not cls._TRANSITIONS.get(status)


class AvailabilityStateMachine:
    """Validate explicit employee availability changes.

    BUSY is entered and left only implicitly, by accepting and completing a
    ticket, so it never appears as a requested target here.
    """

    _TRANSITIONS: dict[EmployeeAvailability, frozenset[EmployeeAvailability]] = {
        EmployeeAvailability.OFFLINE: frozenset({EmployeeAvailability.AVAILABLE, EmployeeAvailability.PAUSED}),
        EmployeeAvailability.AVAILABLE: frozenset({EmployeeAvailability.PAUSED, EmployeeAvailability.OFFLINE}),
        EmployeeAvailability.PAUSED: frozenset(
            {EmployeeAvailability.AVAILABLE, EmployeeAvailability.PAUSED, EmployeeAvailability.OFFLINE}
        ),
        EmployeeAvailability.BUSY: frozenset(),
    }

    @classmethod
    def can_transition(cls, current: EmployeeAvailability, new: EmployeeAvailability) -> bool:
        return new in cls._TRANSITIONS.get(current, frozenset())
