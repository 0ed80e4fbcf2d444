from datetime import datetime, timezone

from queuedesk.dispatch.notifications import DisplayBoard, NotificationService, TicketEvent

NOW = datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)


def _event(client_id: str = "c-1", station_number: int | None = 3) -> TicketEvent:
    return TicketEvent(
        ticket_code="GEN-001",
        category_id=1,
        category_name="General",
        client_id=client_id,
        occurred_at=NOW,
        station_number=station_number,
    )


def test_display_board_messages():
    board = DisplayBoard()
    assert board.message == DisplayBoard.WELCOME

    assert board.show_ticket("PAY-004", 2)
    assert board.snapshot().message == "Ticket PAY-004 please go to station 2"
    assert not board.update("")
    assert board.update("Closing in 10 minutes")
    assert board.ticket_code == "PAY-004"

    board.clear()
    assert board.snapshot().message == ""
    assert board.station_number is None


def test_registered_clients_receive_alerts():
    service = NotificationService(client_name={"c-1": "Lin"}.get)

    service.ticket_created(_event())
    service.ticket_in_progress(_event())

    alerts = service.recent_alerts()
    assert [alert.message for alert in alerts] == [
        "Your ticket GEN-001 has been created for General",
        "Your ticket GEN-001 is being served at station 3",
    ]
    assert service.board.snapshot().ticket_code == "GEN-001"


def test_walk_in_clients_only_see_the_board():
    service = NotificationService(history_size=1)

    service.ticket_in_progress(_event(client_id="walk-in", station_number=5))

    assert service.recent_alerts() == []
    assert service.board.station_number == 5


def test_alert_history_is_bounded():
    service = NotificationService(client_name=lambda _client_id: "Lin", history_size=2)

    for _ in range(3):
        service.ticket_created(_event())

    assert len(service.recent_alerts()) == 2
