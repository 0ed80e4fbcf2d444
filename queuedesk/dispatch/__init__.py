"""Ticket dispatch core: lifecycle, queues, routing and statistics."""

from .dispatcher import Dispatcher
from .models import Administrator, Category, Client, Employee, StaffMember, Station, Ticket
from .queue import CategoryQueue
from .registry import DispatchState, StationRoster
from .state import EmployeeAvailability, StaffKind, StationStatus, TicketStateMachine, TicketStatus
from .statistics import ServiceStatistics, StatisticsAggregator, StatisticsService

__all__ = [
    "Administrator",
    "Category",
    "CategoryQueue",
    "Client",
    "Dispatcher",
    "DispatchState",
    "Employee",
    "EmployeeAvailability",
    "ServiceStatistics",
    "StaffKind",
    "StaffMember",
    "Station",
    "StationRoster",
    "StationStatus",
    "StatisticsAggregator",
    "StatisticsService",
    "Ticket",
    "TicketStateMachine",
    "TicketStatus",
]
