from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TicketEvent:
    """Outbound notification about a ticket lifecycle change."""

    ticket_code: str
    category_id: int
    category_name: str
    client_id: str
    occurred_at: datetime
    station_number: int | None = None


class TicketNotifier(Protocol):
    def ticket_created(self, event: TicketEvent) -> None:
        ...

    def ticket_in_progress(self, event: TicketEvent) -> None:
        ...


class NullNotifier:
    """Notifier that drops every event."""

    def ticket_created(self, event: TicketEvent) -> None:  # pragma: no cover - trivial
        return None

    def ticket_in_progress(self, event: TicketEvent) -> None:  # pragma: no cover - trivial
        return None


@dataclass(frozen=True, slots=True)
class DisplaySnapshot:
    message: str
    ticket_code: str | None
    station_number: int | None


class DisplayBoard:
    """Waiting-room screen showing the ticket currently being called."""

    WELCOME = "Welcome to the service center"

    def __init__(self, message: str = WELCOME) -> None:
        self._message = message
        self._ticket_code: str | None = None
        self._station_number: int | None = None
        self._lock = Lock()

    @property
    def message(self) -> str:
        return self._message

    @property
    def ticket_code(self) -> str | None:
        return self._ticket_code

    @property
    def station_number(self) -> int | None:
        return self._station_number

    def show_ticket(self, ticket_code: str, station_number: int) -> bool:
        if not ticket_code:
            return False
        with self._lock:
            self._ticket_code = ticket_code
            self._station_number = station_number
            self._message = f"Ticket {ticket_code} please go to station {station_number}"
        logger.info("Display updated: %s", self._message)
        return True

    def update(self, message: str | None) -> bool:
        if not message:
            return False
        with self._lock:
            self._message = message
        logger.info("Display updated: %s", message)
        return True

    def clear(self) -> bool:
        with self._lock:
            self._message = ""
            self._ticket_code = None
            self._station_number = None
        logger.info("Display cleared")
        return True

    def snapshot(self) -> DisplaySnapshot:
        with self._lock:
            return DisplaySnapshot(self._message, self._ticket_code, self._station_number)


@dataclass(frozen=True, slots=True)
class ClientAlert:
    client_id: str
    message: str
    sent_at: datetime


class NotificationService:
    """Default notifier: drives the display board and alerts registered clients.

    ``client_name`` resolves a client id to a display name, returning ``None``
    for walk-in clients nobody registered; those receive no direct alert.
    """

    def __init__(
        self,
        board: DisplayBoard | None = None,
        *,
        client_name: Callable[[str], str | None] | None = None,
        history_size: int = 100,
    ) -> None:
        self._board = board or DisplayBoard()
        self._client_name = client_name or (lambda _client_id: None)
        self._alerts: deque[ClientAlert] = deque(maxlen=history_size)
        self._lock = Lock()

    @property
    def board(self) -> DisplayBoard:
        return self._board

    def ticket_created(self, event: TicketEvent) -> None:
        self._alert_client(
            event,
            f"Your ticket {event.ticket_code} has been created for {event.category_name or 'general service'}",
        )

    def ticket_in_progress(self, event: TicketEvent) -> None:
        station = event.station_number if event.station_number is not None else 0
        self._board.show_ticket(event.ticket_code, station)
        logger.info("Visual alert: ticket %s is being called", event.ticket_code)
        self._alert_client(event, f"Your ticket {event.ticket_code} is being served at station {station}")

    def recent_alerts(self) -> list[ClientAlert]:
        with self._lock:
            return list(self._alerts)

    def _alert_client(self, event: TicketEvent, message: str) -> bool:
        name = self._client_name(event.client_id)
        if name is None:
            return False
        alert = ClientAlert(client_id=event.client_id, message=message, sent_at=event.occurred_at)
        with self._lock:
            self._alerts.append(alert)
        logger.info("Alert for client %s (%s): %s", event.client_id, name, message)
        return True
