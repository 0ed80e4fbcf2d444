from __future__ import annotations

import logging
from threading import Lock

from passlib.context import CryptContext

from .models import Administrator, Category, Client, Employee, StaffMember, Station
from .registry import DispatchState
from .state import EmployeeAvailability

logger = logging.getLogger(__name__)

password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return password_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return password_context.verify(password, hashed)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


class CategoryService:
    """Administrative operations on service categories."""

    def __init__(self, state: DispatchState) -> None:
        self._state = state
        self._lock = Lock()

    def create_category(self, name: str, prefix: str, description: str = "") -> Category | None:
        name = (name or "").strip()
        prefix = _normalise_prefix(prefix)
        if not name or not prefix:
            return None
        with self._lock:
            if self.get_by_prefix(prefix) is not None:
                logger.debug("Rejected category with duplicate prefix %s", prefix)
                return None
            category = Category(
                id=max(self._state.categories, default=0) + 1,
                name=name,
                prefix=prefix,
                description=description or "",
            )
            self._state.categories[category.id] = category
        logger.info("Category %s (%s) created with id %s", name, prefix, category.id)
        return category

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        prefix: str | None = None,
    ) -> bool:
        with self._lock:
            category = self._state.categories.get(category_id)
            if category is None:
                return False
            if prefix is not None:
                prefix = _normalise_prefix(prefix)
                if not prefix:
                    return False
                existing = self.get_by_prefix(prefix)
                if existing is not None and existing.id != category_id:
                    return False
            if name is not None and not name.strip():
                return False
            if name is not None:
                category.name = name.strip()
            if description is not None:
                category.description = description
            if prefix is not None:
                category.prefix = prefix
        logger.info("Category %s updated", category_id)
        return True

    def activate_category(self, category_id: int) -> bool:
        category = self._state.categories.get(category_id)
        if category is None:
            return False
        logger.info("Category %s activated", category_id)
        return category.activate()

    def deactivate_category(self, category_id: int) -> bool:
        category = self._state.categories.get(category_id)
        if category is None:
            return False
        logger.info("Category %s deactivated; %s tickets still queued", category_id, len(category.queue))
        return category.deactivate()

    def assign_employee(self, category_id: int, employee_id: str) -> bool:
        category = self._state.categories.get(category_id)
        if category is None or self._state.get_employee(employee_id) is None:
            return False
        return category.assign_employee(employee_id)

    def remove_employee(self, category_id: int, employee_id: str) -> bool:
        category = self._state.categories.get(category_id)
        if category is None:
            return False
        return category.remove_employee(employee_id)

    def active_categories(self) -> list[Category]:
        return [category for category in self.all_categories() if category.active]

    def all_categories(self) -> list[Category]:
        return sorted(self._state.categories.values(), key=lambda category: category.id)

    def get_category(self, category_id: int) -> Category | None:
        return self._state.categories.get(category_id)

    def get_by_prefix(self, prefix: str) -> Category | None:
        prefix = _normalise_prefix(prefix)
        for category in list(self._state.categories.values()):
            if category.prefix == prefix:
                return category
        return None


class StationService:
    """Stations and the single station-to-employee binding."""

    def __init__(self, state: DispatchState) -> None:
        self._state = state
        self._lock = Lock()

    def create_station(self, number: int) -> Station | None:
        if number <= 0:
            return None
        with self._lock:
            if any(station.number == number for station in self._state.stations.values()):
                logger.debug("Rejected duplicate station number %s", number)
                return None
            station = Station(id=max(self._state.stations, default=0) + 1, number=number)
            self._state.stations[station.id] = station
        logger.info("Station %s created with id %s", number, station.id)
        return station

    def open_station(self, station_id: int) -> bool:
        station = self._state.stations.get(station_id)
        if station is None:
            return False
        if not station.open(staffed=self._state.roster.employee_at(station_id) is not None):
            logger.debug("Station %s has no employee and cannot open", station.number)
            return False
        logger.info("Station %s opened", station.number)
        return True

    def close_station(self, station_id: int) -> bool:
        station = self._state.stations.get(station_id)
        if station is None:
            return False
        logger.info("Station %s closed", station.number)
        return station.close()

    def assign_employee(self, station_id: int, employee_id: str) -> bool:
        station = self._state.stations.get(station_id)
        if station is None or self._state.get_employee(employee_id) is None:
            return False
        with self._lock:
            displaced = self._state.roster.employee_at(station_id)
            previous_station_id = self._state.roster.bind(station_id, employee_id)
            if previous_station_id is not None:
                previous = self._state.stations.get(previous_station_id)
                if previous is not None:
                    previous.close()
        if displaced is not None and displaced != employee_id:
            logger.info("Employee %s unbound from station %s", displaced, station.number)
        logger.info("Employee %s assigned to station %s", employee_id, station.number)
        return True

    def release_employee(self, station_id: int) -> bool:
        station = self._state.stations.get(station_id)
        if station is None:
            return False
        with self._lock:
            employee_id = self._state.roster.unbind_station(station_id)
            if employee_id is None:
                return False
            station.close()
        logger.info("Employee %s released from station %s", employee_id, station.number)
        return True

    def add_category(self, station_id: int, category_id: int) -> bool:
        station = self._state.stations.get(station_id)
        if station is None or category_id not in self._state.categories:
            return False
        station.add_category(category_id)
        return True

    def remove_category(self, station_id: int, category_id: int) -> bool:
        station = self._state.stations.get(station_id)
        if station is None:
            return False
        return station.remove_category(category_id)

    def open_stations(self) -> list[Station]:
        return [station for station in self.all_stations() if station.is_open]

    def all_stations(self) -> list[Station]:
        return sorted(self._state.stations.values(), key=lambda station: station.number)

    def get_station(self, station_id: int) -> Station | None:
        return self._state.stations.get(station_id)

    def stations_supporting(self, category_id: int) -> list[Station]:
        return [station for station in self.all_stations() if station.supports(category_id)]

    def employee_at(self, station_id: int) -> Employee | None:
        employee_id = self._state.roster.employee_at(station_id)
        if employee_id is None:
            return None
        return self._state.get_employee(employee_id)

    def station_of(self, employee_id: str) -> Station | None:
        return self._state.station_for(employee_id)


class StaffDirectory:
    """Registry of employees and administrators, discriminated by ``kind``."""

    def __init__(self, state: DispatchState) -> None:
        self._state = state
        self._lock = Lock()

    def register_employee(self, employee_id: str, name: str, password: str) -> Employee | None:
        employee_id = (employee_id or "").strip()
        if not employee_id or not password:
            return None
        employee = Employee(id=employee_id, name=name or employee_id, password_hash=hash_password(password))
        return employee if self._add(employee) else None

    def register_administrator(
        self,
        administrator_id: str,
        name: str,
        password: str,
        access_level: int = 1,
    ) -> Administrator | None:
        administrator_id = (administrator_id or "").strip()
        if not administrator_id or not password or access_level < 1:
            return None
        administrator = Administrator(
            id=administrator_id,
            name=name or administrator_id,
            password_hash=hash_password(password),
            access_level=access_level,
        )
        return administrator if self._add(administrator) else None

    def authenticate(self, staff_id: str, password: str) -> StaffMember | None:
        member = self._state.staff.get(staff_id)
        if member is None or not verify_password(password, member.password_hash):
            logger.info("Authentication failed for %s", staff_id)
            return None
        return member

    def employees(self) -> list[Employee]:
        return sorted(self._state.employees(), key=lambda employee: employee.id)

    def administrators(self) -> list[Administrator]:
        return sorted(self._state.administrators(), key=lambda administrator: administrator.id)

    def get_employee(self, employee_id: str) -> Employee | None:
        return self._state.get_employee(employee_id)

    def get_administrator(self, administrator_id: str) -> Administrator | None:
        member = self._state.staff.get(administrator_id)
        return member if isinstance(member, Administrator) else None

    def get_member(self, staff_id: str) -> StaffMember | None:
        return self._state.staff.get(staff_id)

    def remove_staff(self, staff_id: str) -> bool:
        with self._lock:
            member = self._state.staff.get(staff_id)
            if member is None:
                return False
            if isinstance(member, Employee):
                with member.lock:
                    if member.availability is EmployeeAvailability.BUSY:
                        logger.debug("Rejected removal of busy employee %s", staff_id)
                        return False
                    station_id = self._state.roster.unbind_employee(staff_id)
                    if station_id is not None and station_id in self._state.stations:
                        self._state.stations[station_id].close()
                    for category in self._state.categories.values():
                        category.remove_employee(staff_id)
                    member.availability = EmployeeAvailability.OFFLINE
            del self._state.staff[staff_id]
        logger.info("Staff member %s removed", staff_id)
        return True

    def resume(self, employee_id: str) -> bool:
        return self._transition(employee_id, "resume")

    def pause(self, employee_id: str) -> bool:
        return self._transition(employee_id, "pause")

    def sign_off(self, employee_id: str) -> bool:
        return self._transition(employee_id, "sign_off")

    def _transition(self, employee_id: str, action: str) -> bool:
        employee = self._state.get_employee(employee_id)
        if employee is None:
            return False
        if not getattr(employee, action)():
            logger.debug("Employee %s cannot %s while %s", employee_id, action, employee.availability.value)
            return False
        logger.info("Employee %s is now %s", employee_id, employee.availability.value)
        return True

    def _add(self, member: StaffMember) -> bool:
        with self._lock:
            if member.id in self._state.staff:
                logger.debug("Rejected duplicate staff id %s", member.id)
                return False
            self._state.staff[member.id] = member
        logger.info("Registered %s %s", member.kind.value, member.id)
        return True


class ClientRegistry:
    def __init__(self, state: DispatchState) -> None:
        self._state = state
        self._lock = Lock()

    def register_client(self, client_id: str, name: str, contact: str | None = None) -> Client | None:
        client_id = (client_id or "").strip()
        if not client_id or not (name or "").strip():
            return None
        with self._lock:
            if client_id in self._state.clients:
                return None
            client = Client(id=client_id, name=name.strip(), contact=contact)
            self._state.clients[client_id] = client
        logger.info("Client %s registered", client_id)
        return client

    def get_client(self, client_id: str) -> Client | None:
        return self._state.clients.get(client_id)

    def client_name(self, client_id: str) -> str | None:
        client = self._state.clients.get(client_id)
        return client.name if client is not None else None

    def all_clients(self) -> list[Client]:
        return sorted(self._state.clients.values(), key=lambda client: client.id)


def _normalise_prefix(prefix: str | None) -> str:
    return (prefix or "").strip().upper()
