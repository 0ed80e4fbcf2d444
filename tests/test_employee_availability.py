from datetime import datetime, timezone

from queuedesk.dispatch.models import Employee, Station, Ticket
from queuedesk.dispatch.state import EmployeeAvailability, StationStatus, TicketStatus

T0 = datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)


def _ticket(code: str = "GEN-001") -> Ticket:
    return Ticket(code=code, category_id=1, client_id="c-1", generated_at=T0)


def test_resume_pause_and_sign_off():
    employee = Employee(id="emp-1", name="Ada")
    assert employee.availability is EmployeeAvailability.OFFLINE

    assert employee.resume()
    assert employee.availability is EmployeeAvailability.AVAILABLE
    assert employee.pause()
    assert employee.availability is EmployeeAvailability.PAUSED
    assert employee.resume()
    assert employee.sign_off()
    assert employee.availability is EmployeeAvailability.OFFLINE
    assert employee.pause()


def test_busy_employee_cannot_change_availability():
    employee = Employee(id="emp-1", name="Ada", availability=EmployeeAvailability.AVAILABLE)
    assert employee.accept(_ticket(), at=T0)

    assert not employee.pause()
    assert not employee.sign_off()
    assert not employee.resume()
    assert employee.availability is EmployeeAvailability.BUSY


def test_accept_and_complete_keep_busy_in_step_with_ticket():
    employee = Employee(id="emp-1", name="Ada", availability=EmployeeAvailability.AVAILABLE)
    ticket = _ticket()

    assert employee.accept(ticket, at=T0)
    assert ticket.status is TicketStatus.IN_PROGRESS
    assert ticket.served_by == "emp-1"
    assert employee.current_ticket == ticket.code
    assert employee.availability is EmployeeAvailability.BUSY

    assert employee.complete(ticket, at=T0)
    assert ticket.status is TicketStatus.COMPLETED
    assert employee.current_ticket is None
    assert employee.completed_tickets == [ticket.code]
    assert employee.availability is EmployeeAvailability.AVAILABLE


def test_accept_rejected_when_not_available_leaves_ticket_waiting():
    employee = Employee(id="emp-1", name="Ada", availability=EmployeeAvailability.PAUSED)
    ticket = _ticket()
    assert not employee.accept(ticket, at=T0)
    assert ticket.status is TicketStatus.WAITING
    assert ticket.served_by is None


def test_complete_rejects_ticket_held_by_someone_else():
    employee = Employee(id="emp-1", name="Ada", availability=EmployeeAvailability.AVAILABLE)
    employee.accept(_ticket("GEN-001"), at=T0)
    other = _ticket("GEN-002")
    assert not employee.complete(other, at=T0)
    assert employee.availability is EmployeeAvailability.BUSY


def test_station_opens_only_when_staffed():
    station = Station(id=1, number=4)
    assert not station.open(staffed=False)
    assert station.status is StationStatus.CLOSED
    assert station.open(staffed=True)
    assert station.is_open
    assert station.close()
    assert not station.is_open


def test_station_category_order_is_kept():
    station = Station(id=1, number=4)
    assert station.add_category(2)
    assert station.add_category(1)
    assert not station.add_category(2)
    assert station.category_ids == [2, 1]
    assert station.remove_category(2)
    assert not station.supports(2)
