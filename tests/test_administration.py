from datetime import datetime, timezone

from queuedesk.dispatch.administration import (
    CategoryService,
    ClientRegistry,
    StaffDirectory,
    StationService,
    hash_password,
    verify_password,
)
from queuedesk.dispatch.models import Employee, Ticket
from queuedesk.dispatch.state import EmployeeAvailability, StationStatus


def test_create_category_normalises_prefix_and_rejects_duplicates(state):
    categories = CategoryService(state)

    created = categories.create_category("  Claims ", " clm ")
    assert created is not None
    assert created.id == 3
    assert created.prefix == "CLM"
    assert created.name == "Claims"
    assert created.active

    assert categories.create_category("Other claims", "CLM") is None
    assert categories.create_category("", "XYZ") is None
    assert categories.create_category("No prefix", "  ") is None
    assert categories.get_by_prefix("clm") is created


def test_update_category_keeps_prefix_unique(state):
    categories = CategoryService(state)

    assert not categories.update_category(2, prefix="gen")
    assert categories.update_category(2, name="Billing", prefix="bil")
    assert state.categories[2].name == "Billing"
    assert state.categories[2].prefix == "BIL"
    assert not categories.update_category(2, name="   ")
    assert not categories.update_category(99, name="Ghost")


def test_deactivated_category_is_hidden_but_keeps_its_queue(state):
    categories = CategoryService(state)
    state.categories[1].queue.enqueue(Ticket(code="GEN-001", category_id=1, client_id="c", generated_at=datetime.now(timezone.utc)))

    assert categories.deactivate_category(1)
    assert [category.id for category in categories.active_categories()] == [2]
    assert len(state.categories[1].queue) == 1
    assert categories.activate_category(1)
    assert [category.id for category in categories.active_categories()] == [1, 2]
    assert not categories.activate_category(42)


def test_category_membership_requires_known_employee(state):
    categories = CategoryService(state)

    assert categories.assign_employee(1, "emp-1")
    assert not categories.assign_employee(1, "emp-1")
    assert not categories.assign_employee(1, "ghost")
    assert state.categories[1].employee_ids == ["emp-1"]
    assert categories.remove_employee(1, "emp-1")
    assert not categories.remove_employee(1, "emp-1")


def test_station_numbers_are_positive_and_unique(state):
    stations = StationService(state)

    assert stations.create_station(0) is None
    assert stations.create_station(1) is None
    created = stations.create_station(7)
    assert created is not None
    assert created.id == 2
    assert created.status is StationStatus.CLOSED
    assert [station.number for station in stations.all_stations()] == [1, 7]


def test_station_opens_only_when_staffed(state):
    stations = StationService(state)
    empty = stations.create_station(2)

    assert not stations.open_station(empty.id)
    assert empty.status is StationStatus.CLOSED
    assert stations.assign_employee(empty.id, "emp-1")
    assert stations.open_station(empty.id)
    assert [station.number for station in stations.open_stations()] == [2]


def test_reassigning_employee_moves_binding_and_closes_previous_station(state):
    stations = StationService(state)
    second = stations.create_station(2)

    assert stations.assign_employee(second.id, "emp-1")
    assert stations.employee_at(1) is None
    assert stations.employee_at(second.id).id == "emp-1"
    assert stations.station_of("emp-1") is second
    assert state.stations[1].status is StationStatus.CLOSED
    assert not stations.assign_employee(second.id, "ghost")
    assert not stations.assign_employee(99, "emp-1")


def test_release_employee_closes_station(state):
    stations = StationService(state)

    assert stations.release_employee(1)
    assert state.stations[1].status is StationStatus.CLOSED
    assert state.roster.station_of("emp-1") is None
    assert not stations.release_employee(1)


def test_station_categories(state):
    stations = StationService(state)
    station = stations.create_station(3)

    assert stations.add_category(station.id, 2)
    assert stations.add_category(station.id, 1)
    assert stations.add_category(station.id, 2)
    assert station.category_ids == [2, 1]
    assert not stations.add_category(station.id, 99)
    assert [s.number for s in stations.stations_supporting(2)] == [1, 3]
    assert stations.remove_category(station.id, 2)
    assert not stations.remove_category(station.id, 2)


def test_passwords_are_hashed():
    hashed = hash_password("s3cret")

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "")
    assert not verify_password("s3cret", "not-a-hash")


def test_staff_registration_and_authentication(state):
    directory = StaffDirectory(state)

    employee = directory.register_employee("emp-2", "Grace", "pw")
    administrator = directory.register_administrator("admin", "Root", "root-pw", access_level=3)

    assert employee.availability is EmployeeAvailability.OFFLINE
    assert administrator.access_level == 3
    assert directory.register_employee("emp-2", "Again", "pw") is None
    assert directory.register_employee("  ", "Blank", "pw") is None
    assert directory.register_administrator("root", "Root", "pw", access_level=0) is None
    assert directory.authenticate("emp-2", "pw") is employee
    assert directory.authenticate("emp-2", "nope") is None
    assert directory.authenticate("ghost", "pw") is None
    assert directory.get_employee("admin") is None
    assert directory.get_administrator("admin") is administrator
    assert [member.id for member in directory.employees()] == ["emp-1", "emp-2"]


def test_availability_transitions_through_directory(state):
    directory = StaffDirectory(state)

    assert directory.pause("emp-1")
    assert state.staff["emp-1"].availability is EmployeeAvailability.PAUSED
    assert directory.resume("emp-1")
    assert directory.sign_off("emp-1")
    assert not directory.sign_off("emp-1")
    assert not directory.resume("ghost")


def test_remove_staff_unbinds_and_rejects_busy_employees(state):
    directory = StaffDirectory(state)
    state.categories[1].employee_ids.append("emp-1")
    busy = Employee(id="emp-2", name="Busy", availability=EmployeeAvailability.BUSY, current_ticket="GEN-001")
    state.staff[busy.id] = busy

    assert not directory.remove_staff("emp-2")
    assert directory.remove_staff("emp-1")
    assert "emp-1" not in state.staff
    assert state.roster.employee_at(1) is None
    assert state.stations[1].status is StationStatus.CLOSED
    assert state.categories[1].employee_ids == []
    assert not directory.remove_staff("emp-1")


def test_client_registry(state):
    clients = ClientRegistry(state)

    client = clients.register_client(" c-1 ", "Lin", contact="lin@example.com")
    assert client.id == "c-1"
    assert clients.register_client("c-1", "Duplicate") is None
    assert clients.register_client("c-2", "  ") is None
    assert clients.client_name("c-1") == "Lin"
    assert clients.client_name("c-9") is None
    assert [c.id for c in clients.all_clients()] == ["c-1"]
