from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from queuedesk.dispatch.models import Employee, Ticket
from queuedesk.dispatch.state import EmployeeAvailability, TicketStatus
from queuedesk.dispatch.statistics import OnlineMean, StatisticsAggregator, StatisticsService, build_report
from queuedesk.dispatch.timeutils import Period, day_period, format_duration, month_period, week_period

T0 = datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)


def _completed(code: str, *, wait: int, service: int, employee: str = "emp-1", start: datetime = T0) -> Ticket:
    ticket = Ticket(code=code, category_id=1, client_id="c", generated_at=start)
    ticket.change_status(TicketStatus.IN_PROGRESS, at=start + timedelta(minutes=wait))
    ticket.change_status(TicketStatus.COMPLETED, at=start + timedelta(minutes=wait + service))
    ticket.served_by = employee
    return ticket


def test_online_mean_matches_incremental_formula():
    mean = OnlineMean()
    averages = []
    for sample in (10, 20, 30):
        mean = mean.updated(sample)
        averages.append(mean.value)
    assert averages == [10, 15, 20]


@pytest.mark.parametrize(
    "samples",
    [(10, 20, 30), (5, 5, 5, 5, 5), (1, 2, 3, 4, 5), (60, 0, 15, 45)],
)
def test_service_average_is_online_mean_of_completions(samples):
    aggregator = StatisticsAggregator(day_period(T0), clock=lambda: T0 + timedelta(hours=6))
    previous = 0.0
    for index, sample in enumerate(samples, start=1):
        aggregator.record_ticket(_completed(f"GEN-{index:03d}", wait=1, service=sample))
        expected = (previous * (index - 1) + sample) / index
        assert aggregator.snapshot().average_service_time == pytest.approx(expected)
        previous = expected


def test_record_ticket_is_idempotent_per_code():
    aggregator = StatisticsAggregator(day_period(T0), category_name=lambda _: "General", clock=lambda: T0)
    waiting = Ticket(code="GEN-001", category_id=1, client_id="c", generated_at=T0)

    assert aggregator.record_ticket(waiting)
    assert not aggregator.record_ticket(waiting)
    waiting.change_status(TicketStatus.IN_PROGRESS, at=T0 + timedelta(minutes=4))
    waiting.change_status(TicketStatus.COMPLETED, at=T0 + timedelta(minutes=9))
    assert aggregator.record_ticket(waiting)
    assert not aggregator.record_ticket(waiting)

    snapshot = aggregator.snapshot()
    assert snapshot.generated_tickets == 1
    assert snapshot.attended_tickets == 1
    assert snapshot.tickets_by_category == {"General": 1}
    assert snapshot.average_waiting_time == 4
    assert snapshot.average_service_time == 5


def test_tickets_outside_the_window_are_ignored():
    aggregator = StatisticsAggregator(day_period(T0), clock=lambda: T0)
    yesterday = Ticket(code="GEN-001", category_id=1, client_id="c", generated_at=T0 - timedelta(days=1))
    assert not aggregator.record_ticket(yesterday)
    assert not aggregator.record_ticket(None)
    assert aggregator.snapshot().generated_tickets == 0


def test_snapshot_is_immutable_copy():
    aggregator = StatisticsAggregator(day_period(T0), clock=lambda: T0)
    snapshot = aggregator.snapshot()
    aggregator.record_ticket(Ticket(code="GEN-001", category_id=1, client_id="c", generated_at=T0))
    assert snapshot.generated_tickets == 0
    with pytest.raises(AttributeError):
        snapshot.generated_tickets = 3  # type: ignore[misc]


def test_build_report_productivity_uses_completions_in_window():
    inside = _completed("GEN-001", wait=5, service=30)
    late = _completed("GEN-002", wait=5, service=30, start=T0 + timedelta(hours=14, minutes=50))
    report = build_report([inside, late], day_period(T0), clock=lambda: T0 + timedelta(days=2))

    assert report.generated_tickets == 2
    assert report.attended_tickets == 2
    assert report.employee_productivity == {"emp-1": pytest.approx(2.0)}


def test_statistics_service_reports_and_rollover(state, clock):
    service = StatisticsService(state, clock=clock)
    today = _completed("GEN-001", wait=10, service=30, start=clock())
    state.tickets[today.code] = today
    state.staff["emp-1"].completed_tickets.append(today.code)

    seeded = service.seed()
    assert seeded.generated_tickets == 1
    assert service.daily_statistics().attended_tickets == 1
    assert service.weekly_statistics().generated_tickets == 1
    assert service.monthly_statistics().generated_tickets == 1
    assert service.employee_productivity("emp-1") == pytest.approx(2.0)
    assert service.employee_productivity("ghost") == 0.0
    assert service.employee_productivity_statistics() == {"emp-1": pytest.approx(2.0)}

    clock.advance(days=1)
    assert service.current_statistics().generated_tickets == 0
    assert service.daily_statistics().generated_tickets == 0
    assert service.weekly_statistics().generated_tickets == 1


def test_productivity_is_zero_without_service_time(state, clock):
    service = StatisticsService(state, clock=clock)
    instant = _completed("GEN-001", wait=0, service=0, start=clock())
    state.tickets[instant.code] = instant
    state.staff["emp-1"].completed_tickets.append(instant.code)
    state.staff["emp-2"] = Employee(id="emp-2", name="Grace", availability=EmployeeAvailability.OFFLINE)

    assert service.employee_productivity_statistics() == {"emp-1": 0.0, "emp-2": 0.0}


def test_average_waiting_time_by_category(state, clock):
    service = StatisticsService(state, clock=clock)
    for index, wait in enumerate((4, 8), start=1):
        ticket = _completed(f"GEN-00{index}", wait=wait, service=1, start=clock())
        state.tickets[ticket.code] = ticket
    state.tickets["GEN-003"] = Ticket(code="GEN-003", category_id=1, client_id="c", generated_at=clock())

    assert service.average_waiting_time_by_category(1) == 6
    assert service.average_waiting_time_by_category(2) == 0.0


def test_statistics_for_period_validates_bounds(state, clock):
    service = StatisticsService(state, clock=clock)
    assert service.statistics_for_period(clock(), clock()) is None
    report = service.statistics_for_period(clock() - timedelta(hours=1), clock() + timedelta(hours=1))
    assert report is not None
    assert report.period_end - report.period_start == timedelta(hours=2)


def test_period_boundaries():
    assert week_period(T0).start == datetime(2024, 5, 13, tzinfo=timezone.utc)
    assert week_period(T0).end == datetime(2024, 5, 20, tzinfo=timezone.utc)
    assert month_period(T0) == Period(
        datetime(2024, 5, 1, tzinfo=timezone.utc), datetime(2024, 6, 1, tzinfo=timezone.utc)
    )
    december = month_period(datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc))
    assert december.end == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_day_period_in_report_timezone():
    zone = ZoneInfo("America/New_York")
    period = day_period(datetime(2024, 5, 15, 2, 0, tzinfo=timezone.utc), zone)
    assert period.start == datetime(2024, 5, 14, 4, 0, tzinfo=timezone.utc)
    assert period.contains(datetime(2024, 5, 15, 3, 59, tzinfo=timezone.utc))
    assert not period.contains(period.end)


def test_format_duration():
    assert format_duration(65) == "1h 5m"
    assert format_duration(45) == "45m"
    assert format_duration(0) == "0m"
