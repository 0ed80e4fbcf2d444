"""Pydantic payloads shared by the HTTP routes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, Field

from queuedesk.dispatch.models import Administrator, Category, Client, Employee, StaffMember, Station, Ticket
from queuedesk.dispatch.notifications import DisplaySnapshot
from queuedesk.dispatch.state import EmployeeAvailability, StationStatus, TicketStatus
from queuedesk.dispatch.statistics import ServiceStatistics


class TicketModel(BaseModel):
    code: str
    category_id: int
    client_id: str
    status: TicketStatus
    generated_at: datetime
    attended_at: datetime | None = None
    completed_at: datetime | None = None
    served_by: str | None = None
    station_number: int | None = None
    waiting_minutes: int
    service_minutes: int

    @classmethod
    def from_entity(cls, ticket: Ticket, now: datetime) -> "TicketModel":
        return cls(
            code=ticket.code,
            category_id=ticket.category_id,
            client_id=ticket.client_id,
            status=ticket.status,
            generated_at=ticket.generated_at,
            attended_at=ticket.attended_at,
            completed_at=ticket.completed_at,
            served_by=ticket.served_by,
            station_number=ticket.station_number,
            waiting_minutes=ticket.waiting_time(now),
            service_minutes=ticket.service_time(now),
        )


class TicketCreateRequest(BaseModel):
    category_id: int
    client_id: str = Field(min_length=1, max_length=64)


class QueuePositionModel(BaseModel):
    code: str
    position: int


class AssignmentModel(BaseModel):
    ticket: TicketModel | None = None


class CategoryModel(BaseModel):
    id: int
    name: str
    prefix: str
    description: str
    active: bool
    pending: int
    employee_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, category: Category) -> "CategoryModel":
        return cls(
            id=category.id,
            name=category.name,
            prefix=category.prefix,
            description=category.description,
            active=category.active,
            pending=category.queue.count_pending(),
            employee_ids=list(category.employee_ids),
        )


class CategoryCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    prefix: str = Field(min_length=1, max_length=16)
    description: str = ""


class CategoryUpdateRequest(BaseModel):
    name: str | None = None
    prefix: str | None = Field(default=None, max_length=16)
    description: str | None = None


class StationModel(BaseModel):
    id: int
    number: int
    status: StationStatus
    category_ids: list[int] = Field(default_factory=list)
    employee_id: str | None = None

    @classmethod
    def from_entity(cls, station: Station, employee_id: str | None) -> "StationModel":
        return cls(
            id=station.id,
            number=station.number,
            status=station.status,
            category_ids=list(station.category_ids),
            employee_id=employee_id,
        )


class StationCreateRequest(BaseModel):
    number: int = Field(gt=0)


class StationEmployeeRequest(BaseModel):
    employee_id: str


class EmployeeModel(BaseModel):
    kind: Literal["employee"] = "employee"
    id: str
    name: str
    availability: EmployeeAvailability
    current_ticket: str | None = None
    completed_tickets: int = 0
    station_id: int | None = None


class AdministratorModel(BaseModel):
    kind: Literal["administrator"] = "administrator"
    id: str
    name: str
    access_level: int


StaffModel = Union[EmployeeModel, AdministratorModel]


def staff_to_model(member: StaffMember, station_id: int | None = None) -> EmployeeModel | AdministratorModel:
    if isinstance(member, Administrator):
        return AdministratorModel(id=member.id, name=member.name, access_level=member.access_level)
    return employee_to_model(member, station_id)


def employee_to_model(employee: Employee, station_id: int | None) -> EmployeeModel:
    return EmployeeModel(
        id=employee.id,
        name=employee.name,
        availability=employee.availability,
        current_ticket=employee.current_ticket,
        completed_tickets=len(employee.completed_tickets),
        station_id=station_id,
    )


class EmployeeCreateRequest(BaseModel):
    kind: Literal["employee"]
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdministratorCreateRequest(BaseModel):
    kind: Literal["administrator"]
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    access_level: int = Field(default=1, ge=1)


StaffCreateRequest = Union[EmployeeCreateRequest, AdministratorCreateRequest]


class ClientModel(BaseModel):
    id: str
    name: str
    contact: str | None = None

    @classmethod
    def from_entity(cls, client: Client) -> "ClientModel":
        return cls(id=client.id, name=client.name, contact=client.contact)


class ClientCreateRequest(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    contact: str | None = None


class LoginRequest(BaseModel):
    staff_id: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    staff_id: str
    kind: str


class StatisticsModel(BaseModel):
    period_start: datetime
    period_end: datetime
    generated_tickets: int
    attended_tickets: int
    average_waiting_time: float
    average_service_time: float
    formatted_waiting_time: str
    formatted_service_time: str
    tickets_by_category: dict[str, int]
    employee_productivity: dict[str, float]

    @classmethod
    def from_snapshot(cls, snapshot: ServiceStatistics) -> "StatisticsModel":
        return cls(
            period_start=snapshot.period_start,
            period_end=snapshot.period_end,
            generated_tickets=snapshot.generated_tickets,
            attended_tickets=snapshot.attended_tickets,
            average_waiting_time=snapshot.average_waiting_time,
            average_service_time=snapshot.average_service_time,
            formatted_waiting_time=snapshot.formatted_waiting_time,
            formatted_service_time=snapshot.formatted_service_time,
            tickets_by_category=dict(snapshot.tickets_by_category),
            employee_productivity=dict(snapshot.employee_productivity),
        )


class DisplayModel(BaseModel):
    message: str
    ticket_code: str | None = None
    station_number: int | None = None

    @classmethod
    def from_snapshot(cls, snapshot: DisplaySnapshot) -> "DisplayModel":
        return cls(message=snapshot.message, ticket_code=snapshot.ticket_code, station_number=snapshot.station_number)
