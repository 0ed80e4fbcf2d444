from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status

from queuedesk.api.schemas import (
    AdministratorCreateRequest,
    CategoryCreateRequest,
    CategoryModel,
    CategoryUpdateRequest,
    ClientModel,
    StaffCreateRequest,
    StaffModel,
    StationCreateRequest,
    StationEmployeeRequest,
    StationModel,
    staff_to_model,
)
from queuedesk.dependencies.auth import Role, TokenRegistry, get_token_registry, role_required
from queuedesk.dependencies.dispatch import QueueService
from queuedesk.dispatch.models import Category, Station
from queuedesk.dispatch.service import QueueDeskService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(role_required(Role.ADMIN))])


def _category(service: QueueDeskService, category_id: int) -> Category:
    category = service.categories.get_category(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


def _station(service: QueueDeskService, station_id: int) -> Station:
    station = service.stations.get_station(station_id)
    if station is None:
        raise HTTPException(status_code=404, detail="Station not found")
    return station


def _station_model(service: QueueDeskService, station: Station) -> StationModel:
    return StationModel.from_entity(station, service.state.roster.employee_at(station.id))


def _require_employee(service: QueueDeskService, employee_id: str) -> None:
    if service.staff.get_employee(employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")


# -- categories -------------------------------------------------------------------


@router.get("/categories", response_model=list[CategoryModel])
async def list_categories(service: QueueService) -> list[CategoryModel]:
    return [CategoryModel.from_entity(category) for category in service.categories.all_categories()]


@router.post("/categories", response_model=CategoryModel, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreateRequest, service: QueueService) -> CategoryModel:
    category = await service.create_category(payload.name, payload.prefix, payload.description)
    if category is None:
        raise HTTPException(status_code=409, detail="Category prefix already in use")
    return CategoryModel.from_entity(category)


@router.patch("/categories/{category_id}", response_model=CategoryModel)
async def update_category(category_id: int, payload: CategoryUpdateRequest, service: QueueService) -> CategoryModel:
    category = _category(service, category_id)
    updated = await service.update_category(
        category_id,
        name=payload.name,
        description=payload.description,
        prefix=payload.prefix,
    )
    if not updated:
        raise HTTPException(status_code=409, detail="Category update rejected")
    return CategoryModel.from_entity(category)


@router.post("/categories/{category_id}/activate", response_model=CategoryModel)
async def activate_category(category_id: int, service: QueueService) -> CategoryModel:
    category = _category(service, category_id)
    await service.activate_category(category_id)
    return CategoryModel.from_entity(category)


@router.post("/categories/{category_id}/deactivate", response_model=CategoryModel)
async def deactivate_category(category_id: int, service: QueueService) -> CategoryModel:
    category = _category(service, category_id)
    await service.deactivate_category(category_id)
    return CategoryModel.from_entity(category)


@router.put("/categories/{category_id}/employees/{employee_id}", response_model=CategoryModel)
async def add_category_employee(category_id: int, employee_id: str, service: QueueService) -> CategoryModel:
    category = _category(service, category_id)
    _require_employee(service, employee_id)
    if employee_id not in category.employee_ids:
        await service.assign_employee_to_category(category_id, employee_id)
    return CategoryModel.from_entity(category)


@router.delete("/categories/{category_id}/employees/{employee_id}", response_model=CategoryModel)
async def remove_category_employee(category_id: int, employee_id: str, service: QueueService) -> CategoryModel:
    category = _category(service, category_id)
    if not await service.remove_employee_from_category(category_id, employee_id):
        raise HTTPException(status_code=404, detail="Employee is not assigned to this category")
    return CategoryModel.from_entity(category)


# -- stations ---------------------------------------------------------------------


@router.get("/stations", response_model=list[StationModel])
async def list_stations(service: QueueService) -> list[StationModel]:
    return [_station_model(service, station) for station in service.stations.all_stations()]


@router.post("/stations", response_model=StationModel, status_code=status.HTTP_201_CREATED)
async def create_station(payload: StationCreateRequest, service: QueueService) -> StationModel:
    station = await service.create_station(payload.number)
    if station is None:
        raise HTTPException(status_code=409, detail="Station number already in use")
    return _station_model(service, station)


@router.post("/stations/{station_id}/open", response_model=StationModel)
async def open_station(station_id: int, service: QueueService) -> StationModel:
    station = _station(service, station_id)
    if not await service.open_station(station_id):
        raise HTTPException(status_code=409, detail="A station needs an employee before it can open")
    return _station_model(service, station)


@router.post("/stations/{station_id}/close", response_model=StationModel)
async def close_station(station_id: int, service: QueueService) -> StationModel:
    station = _station(service, station_id)
    await service.close_station(station_id)
    return _station_model(service, station)


@router.put("/stations/{station_id}/employee", response_model=StationModel)
async def assign_station_employee(
    station_id: int, payload: StationEmployeeRequest, service: QueueService
) -> StationModel:
    station = _station(service, station_id)
    _require_employee(service, payload.employee_id)
    await service.assign_employee_to_station(station_id, payload.employee_id)
    return _station_model(service, station)


@router.delete("/stations/{station_id}/employee", response_model=StationModel)
async def release_station_employee(station_id: int, service: QueueService) -> StationModel:
    station = _station(service, station_id)
    if not await service.release_station_employee(station_id):
        raise HTTPException(status_code=404, detail="Station has no employee")
    return _station_model(service, station)


@router.put("/stations/{station_id}/categories/{category_id}", response_model=StationModel)
async def add_station_category(station_id: int, category_id: int, service: QueueService) -> StationModel:
    station = _station(service, station_id)
    _category(service, category_id)
    if not station.supports(category_id):
        await service.add_station_category(station_id, category_id)
    return _station_model(service, station)


@router.delete("/stations/{station_id}/categories/{category_id}", response_model=StationModel)
async def remove_station_category(station_id: int, category_id: int, service: QueueService) -> StationModel:
    station = _station(service, station_id)
    if not await service.remove_station_category(station_id, category_id):
        raise HTTPException(status_code=404, detail="Category is not supported by this station")
    return _station_model(service, station)


# -- staff and clients ------------------------------------------------------------


@router.get("/staff", response_model=list[StaffModel])
async def list_staff(service: QueueService) -> list[StaffModel]:
    members = [*service.staff.administrators(), *service.staff.employees()]
    return [staff_to_model(member, service.state.roster.station_of(member.id)) for member in members]


@router.post("/staff", response_model=StaffModel, status_code=status.HTTP_201_CREATED)
async def register_staff(
    payload: Annotated[StaffCreateRequest, Body(discriminator="kind")], service: QueueService
) -> StaffModel:
    if isinstance(payload, AdministratorCreateRequest):
        member = await service.register_administrator(payload.id, payload.name, payload.password, payload.access_level)
    else:
        member = await service.register_employee(payload.id, payload.name, payload.password)
    if member is None:
        raise HTTPException(status_code=409, detail="Staff id already registered")
    return staff_to_model(member)


@router.delete("/staff/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_staff(
    staff_id: str,
    service: QueueService,
    tokens: Annotated[TokenRegistry, Depends(get_token_registry)],
) -> None:
    if service.staff.get_member(staff_id) is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    if not await service.remove_staff(staff_id):
        raise HTTPException(status_code=409, detail="Staff member is serving a ticket")
    tokens.revoke_staff(staff_id)


@router.get("/clients", response_model=list[ClientModel])
async def list_clients(service: QueueService) -> list[ClientModel]:
    return [ClientModel.from_entity(client) for client in service.clients.all_clients()]
