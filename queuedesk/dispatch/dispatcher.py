from __future__ import annotations

import logging

from .models import Category, Ticket
from .notifications import NullNotifier, TicketEvent, TicketNotifier
from .registry import DispatchState
from .state import EmployeeAvailability, TicketStateMachine, TicketStatus
from .statistics import StatisticsService
from .timeutils import Clock, utcnow

logger = logging.getLogger(__name__)


class Dispatcher:
    """Creates, assigns, completes and cancels tickets over a loaded state.

    Every operation is synchronous and returns ``None``/``False`` when a
    precondition fails, before anything is mutated. Queue mutations run under
    the category queue lock and employee transitions under the employee lock;
    assignment takes the employee lock first, then one queue lock at a time.
    """

    def __init__(
        self,
        state: DispatchState,
        *,
        statistics: StatisticsService | None = None,
        notifier: TicketNotifier | None = None,
        clock: Clock = utcnow,
        require_open_station: bool = True,
        code_width: int = 3,
    ) -> None:
        self._state = state
        self._clock = clock
        self._statistics = statistics or StatisticsService(state, clock=clock)
        self._notifier: TicketNotifier = notifier or NullNotifier()
        self._require_open_station = require_open_station
        self._code_width = max(1, code_width)

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def statistics(self) -> StatisticsService:
        return self._statistics

    def create_ticket(self, client_id: str, category_id: int) -> Ticket | None:
        client_id = (client_id or "").strip()
        if not client_id:
            logger.debug("Rejected ticket creation without a client id")
            return None
        category = self._state.categories.get(category_id)
        if category is None or not category.active:
            logger.debug("Rejected ticket creation for unknown or inactive category %s", category_id)
            return None

        ticket = self._register_ticket(category, client_id)
        if not category.queue.enqueue(ticket):
            del self._state.tickets[ticket.code]
            logger.debug("Category %s was deactivated before ticket %s was queued", category.id, ticket.code)
            return None

        self._statistics.record_ticket(ticket)
        logger.info("Ticket %s created for client %s in category %s", ticket.code, client_id, category.name)
        self._notify("ticket_created", self._event(ticket, category))
        return ticket

    def assign_next_ticket(self, employee_id: str) -> Ticket | None:
        """Hand the employee the head of the first non-empty supported queue.

        Supported categories are tried in the station's declared order; there
        is no fairness across categories.
        """

        employee = self._state.get_employee(employee_id)
        if employee is None:
            return None
        station = self._state.station_for(employee.id)
        if station is None:
            logger.debug("Employee %s has no station", employee.id)
            return None
        if self._require_open_station and not station.is_open:
            logger.debug("Station %s is closed; no assignment for %s", station.number, employee.id)
            return None

        assigned: tuple[Ticket, Category] | None = None
        with employee.lock:
            if employee.availability is not EmployeeAvailability.AVAILABLE or employee.current_ticket is not None:
                logger.debug("Employee %s is %s; no assignment", employee.id, employee.availability.value)
                return None
            for category_id in list(station.category_ids):
                category = self._state.categories.get(category_id)
                if category is None:
                    continue
                ticket = self._dequeue_waiting(category)
                if ticket is None:
                    continue
                if not employee.accept(ticket, at=self._clock()):
                    category.queue.restore(ticket)
                    logger.warning("Employee %s could not accept ticket %s", employee.id, ticket.code)
                    return None
                ticket.station_number = station.number
                assigned = (ticket, category)
                break

        if assigned is None:
            return None
        ticket, category = assigned
        logger.info("Ticket %s assigned to %s at station %s", ticket.code, employee.id, station.number)
        self._notify("ticket_in_progress", self._event(ticket, category))
        return ticket

    def complete_ticket(self, ticket_code: str, employee_id: str) -> bool:
        ticket = self._state.tickets.get(ticket_code)
        employee = self._state.get_employee(employee_id)
        if ticket is None or employee is None:
            return False
        if ticket.status is not TicketStatus.IN_PROGRESS or ticket.served_by != employee.id:
            logger.debug("Rejected completion of %s by %s", ticket_code, employee_id)
            return False
        if not employee.complete(ticket, at=self._clock()):
            return False

        self._statistics.record_ticket(ticket)
        logger.info(
            "Ticket %s completed by %s after %s min in service",
            ticket.code,
            employee.id,
            ticket.service_time(self._clock()),
        )
        return True

    def cancel_ticket(self, code: str) -> bool:
        ticket = self._state.tickets.get(code)
        if ticket is None or ticket.status is not TicketStatus.WAITING:
            return False
        category = self._state.categories.get(ticket.category_id)
        if category is not None and not category.queue.remove(code):
            logger.debug("Ticket %s is no longer in its queue; cancellation rejected", code)
            return False
        if not ticket.change_status(TicketStatus.CANCELLED, at=self._clock()):
            return False
        logger.info("Ticket %s cancelled", code)
        return True

    def queue_position(self, code: str) -> int:
        ticket = self._state.tickets.get(code)
        if ticket is None or ticket.status is not TicketStatus.WAITING:
            return -1
        category = self._state.categories.get(ticket.category_id)
        if category is None:
            return -1
        return category.queue.position_of(code)

    def get_ticket(self, code: str) -> Ticket | None:
        return self._state.tickets.get(code)

    def waiting_tickets(self, category_id: int) -> list[Ticket] | None:
        category = self._state.categories.get(category_id)
        if category is None:
            return None
        return category.queue.peek_all()

    def tickets_for_client(self, client_id: str) -> list[Ticket]:
        tickets = [ticket for ticket in list(self._state.tickets.values()) if ticket.client_id == client_id]
        return sorted(tickets, key=lambda ticket: ticket.generated_at)

    def tickets_served_by(self, employee_id: str) -> list[Ticket]:
        tickets = [
            ticket
            for ticket in list(self._state.tickets.values())
            if ticket.served_by == employee_id
            and ticket.status in (TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED)
        ]
        return sorted(tickets, key=lambda ticket: ticket.attended_at or ticket.generated_at)

    def current_ticket(self, employee_id: str) -> Ticket | None:
        employee = self._state.get_employee(employee_id)
        if employee is None or employee.current_ticket is None:
            return None
        return self._state.tickets.get(employee.current_ticket)

    def pending_counts(self) -> dict[int, int]:
        return {category_id: category.queue.count_pending() for category_id, category in self._state.categories.items()}

    def _register_ticket(self, category: Category, client_id: str) -> Ticket:
        """Issue the category's next free code and store the new ticket under it.

        A prefix freed by a renamed category may already own older codes;
        those sequence numbers are skipped.
        """

        generated_at = self._clock()
        while True:
            ticket = Ticket(
                code=category.issue_code(self._code_width),
                category_id=category.id,
                client_id=client_id,
                generated_at=generated_at,
                status=TicketStateMachine.initial_state(),
            )
            if self._state.tickets.setdefault(ticket.code, ticket) is ticket:
                return ticket
            logger.info("Ticket code %s is already taken; issuing the next one", ticket.code)

    def _dequeue_waiting(self, category: Category) -> Ticket | None:
        while True:
            ticket = category.queue.dequeue()
            if ticket is None or ticket.status is TicketStatus.WAITING:
                return ticket
            logger.warning("Skipping ticket %s in %s queue with status %s", ticket.code, category.name, ticket.status.value)

    def _event(self, ticket: Ticket, category: Category) -> TicketEvent:
        return TicketEvent(
            ticket_code=ticket.code,
            category_id=category.id,
            category_name=category.name,
            client_id=ticket.client_id,
            occurred_at=self._clock(),
            station_number=ticket.station_number,
        )

    def _notify(self, hook: str, event: TicketEvent) -> None:
        try:
            getattr(self._notifier, hook)(event)
        except Exception:
            logger.exception("Notifier failed on %s for ticket %s", hook, event.ticket_code)

