from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import APIRouter, HTTPException

from queuedesk.api.schemas import AssignmentModel, EmployeeModel, TicketModel, employee_to_model
from queuedesk.dependencies.auth import CurrentUser, ensure_can_act_for
from queuedesk.dependencies.dispatch import QueueService
from queuedesk.dispatch.models import Employee
from queuedesk.dispatch.service import QueueDeskService

router = APIRouter(prefix="/employees", tags=["employees"])


def _require_employee(service: QueueDeskService, employee_id: str) -> Employee:
    employee = service.staff.get_employee(employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


def _to_model(service: QueueDeskService, employee: Employee) -> EmployeeModel:
    return employee_to_model(employee, service.state.roster.station_of(employee.id))


@router.get("/{employee_id}", response_model=EmployeeModel)
async def get_employee(employee_id: str, service: QueueService, user: CurrentUser) -> EmployeeModel:
    ensure_can_act_for(user, employee_id)
    return _to_model(service, _require_employee(service, employee_id))


@router.get("/{employee_id}/tickets", response_model=list[TicketModel])
async def list_served_tickets(employee_id: str, service: QueueService, user: CurrentUser) -> list[TicketModel]:
    ensure_can_act_for(user, employee_id)
    _require_employee(service, employee_id)
    now = service.now()
    return [TicketModel.from_entity(ticket, now) for ticket in service.dispatcher.tickets_served_by(employee_id)]


@router.post("/{employee_id}/next", response_model=AssignmentModel, summary="Take the next waiting ticket")
async def assign_next_ticket(employee_id: str, service: QueueService, user: CurrentUser) -> AssignmentModel:
    ensure_can_act_for(user, employee_id)
    _require_employee(service, employee_id)
    ticket = await service.assign_next_ticket(employee_id)
    if ticket is None:
        return AssignmentModel(ticket=None)
    return AssignmentModel(ticket=TicketModel.from_entity(ticket, service.now()))


@router.post("/{employee_id}/tickets/{code}/complete", response_model=TicketModel)
async def complete_ticket(employee_id: str, code: str, service: QueueService, user: CurrentUser) -> TicketModel:
    ensure_can_act_for(user, employee_id)
    _require_employee(service, employee_id)
    ticket = service.dispatcher.get_ticket(code)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if not await service.complete_ticket(code, employee_id):
        raise HTTPException(status_code=409, detail="Ticket is not in progress with this employee")
    return TicketModel.from_entity(ticket, service.now())


async def _change_availability(
    employee_id: str,
    service: QueueDeskService,
    action: Callable[[str], Awaitable[bool]],
) -> EmployeeModel:
    employee = _require_employee(service, employee_id)
    if not await action(employee_id):
        raise HTTPException(
            status_code=409,
            detail=f"Availability change not allowed while {employee.availability.value}",
        )
    return _to_model(service, employee)


@router.post("/{employee_id}/resume", response_model=EmployeeModel)
async def resume(employee_id: str, service: QueueService, user: CurrentUser) -> EmployeeModel:
    ensure_can_act_for(user, employee_id)
    return await _change_availability(employee_id, service, service.resume)


@router.post("/{employee_id}/pause", response_model=EmployeeModel)
async def pause(employee_id: str, service: QueueService, user: CurrentUser) -> EmployeeModel:
    ensure_can_act_for(user, employee_id)
    return await _change_availability(employee_id, service, service.pause)


@router.post("/{employee_id}/sign-off", response_model=EmployeeModel)
async def sign_off(employee_id: str, service: QueueService, user: CurrentUser) -> EmployeeModel:
    ensure_can_act_for(user, employee_id)
    return await _change_availability(employee_id, service, service.sign_off)
