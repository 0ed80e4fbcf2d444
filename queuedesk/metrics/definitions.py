"""Metrics the dispatch service registers on startup."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

TICKETS_CREATED = "queuedesk_tickets_created_total"
TICKETS_ASSIGNED = "queuedesk_tickets_assigned_total"
TICKETS_COMPLETED = "queuedesk_tickets_completed_total"
TICKETS_CANCELLED = "queuedesk_tickets_cancelled_total"
OPERATION_REJECTIONS = "queuedesk_operation_rejections_total"
TICKET_WAIT_MINUTES = "queuedesk_ticket_wait_minutes"
TICKET_SERVICE_MINUTES = "queuedesk_ticket_service_minutes"
STORE_FLUSH_SECONDS = "queuedesk_store_flush_seconds"
STORE_FLUSH_FAILURES = "queuedesk_store_flush_failures_total"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=TICKETS_CREATED,
        metric_type="counter",
        description="Tickets issued to clients.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=TICKETS_ASSIGNED,
        metric_type="counter",
        description="Tickets handed to an employee.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=TICKETS_COMPLETED,
        metric_type="counter",
        description="Tickets served to completion.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=TICKETS_CANCELLED,
        metric_type="counter",
        description="Waiting tickets cancelled before service.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=OPERATION_REJECTIONS,
        metric_type="counter",
        description="Dispatch operations rejected by a precondition.",
        label_names=("operation",),
    ),
    MetricDefinition(
        name=TICKET_WAIT_MINUTES,
        metric_type="distribution",
        description="Whole minutes a completed ticket waited before service.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=TICKET_SERVICE_MINUTES,
        metric_type="distribution",
        description="Whole minutes a completed ticket spent in service.",
        label_names=("category",),
    ),
    MetricDefinition(
        name=STORE_FLUSH_SECONDS,
        metric_type="distribution",
        description="Duration of store flushes in seconds.",
    ),
    MetricDefinition(
        name=STORE_FLUSH_FAILURES,
        metric_type="counter",
        description="Store flushes that raised an error.",
    ),
)
