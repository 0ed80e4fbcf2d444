from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from queuedesk.api.schemas import StatisticsModel
from queuedesk.dependencies.auth import Role, role_required
from queuedesk.dependencies.dispatch import QueueService

router = APIRouter(prefix="/statistics", tags=["statistics"], dependencies=[Depends(role_required(Role.ADMIN))])


@router.get("/current", response_model=StatisticsModel, summary="Running aggregate for today")
async def current_statistics(service: QueueService) -> StatisticsModel:
    return StatisticsModel.from_snapshot(service.statistics.current_statistics())


@router.get("/daily", response_model=StatisticsModel)
async def daily_statistics(service: QueueService) -> StatisticsModel:
    return StatisticsModel.from_snapshot(service.statistics.daily_statistics())


@router.get("/weekly", response_model=StatisticsModel)
async def weekly_statistics(service: QueueService) -> StatisticsModel:
    return StatisticsModel.from_snapshot(service.statistics.weekly_statistics())


@router.get("/monthly", response_model=StatisticsModel)
async def monthly_statistics(service: QueueService) -> StatisticsModel:
    return StatisticsModel.from_snapshot(service.statistics.monthly_statistics())


@router.get("/period", response_model=StatisticsModel)
async def period_statistics(start: datetime, end: datetime, service: QueueService) -> StatisticsModel:
    snapshot = service.statistics.statistics_for_period(start, end)
    if snapshot is None:
        raise HTTPException(status_code=422, detail="end must be after start")
    return StatisticsModel.from_snapshot(snapshot)


@router.get("/employees", summary="Tickets per hour for every employee")
async def employee_productivity(service: QueueService) -> dict[str, float]:
    return service.statistics.employee_productivity_statistics()


@router.get("/categories/{category_id}/waiting-time", summary="Mean waiting minutes for a category")
async def category_waiting_time(category_id: int, service: QueueService) -> dict[str, float | int]:
    if service.categories.get_category(category_id) is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return {
        "category_id": category_id,
        "average_waiting_time": service.statistics.average_waiting_time_by_category(category_id),
    }
