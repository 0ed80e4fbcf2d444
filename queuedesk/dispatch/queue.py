from __future__ import annotations

from collections import deque
from threading import Lock
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import Ticket


class CategoryQueue:
    """FIFO of waiting tickets for a single service category.

    All mutations happen under one lock per queue. Deactivation only blocks new
    enqueues; tickets already waiting stay in order and can still be dequeued.
    """

    def __init__(self, tickets: Iterable[Ticket] = (), *, active: bool = True) -> None:
        self._tickets: deque[Ticket] = deque(tickets)
        self._active = active
        self._lock = Lock()

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> bool:
        with self._lock:
            self._active = True
        return True

    def deactivate(self) -> bool:
        with self._lock:
            self._active = False
        return True

    def enqueue(self, ticket: Ticket | None) -> bool:
        if ticket is None:
            return False
        with self._lock:
            if not self._active:
                return False
            self._tickets.append(ticket)
        return True

    def dequeue(self) -> Ticket | None:
        with self._lock:
            if not self._tickets:
                return None
            return self._tickets.popleft()

    def restore(self, ticket: Ticket) -> None:
        """Put a ticket taken by :meth:`dequeue` back at the head, even while inactive."""

        with self._lock:
            self._tickets.appendleft(ticket)

    def remove(self, code: str) -> bool:
        """Scan the live queue and drop the ticket with ``code``."""

        with self._lock:
            for index, ticket in enumerate(self._tickets):
                if ticket.code == code:
                    del self._tickets[index]
                    return True
        return False

    def position_of(self, code: str) -> int:
        for index, ticket in enumerate(self.peek_all(), start=1):
            if ticket.code == code:
                return index
        return -1

    def peek_all(self) -> list[Ticket]:
        with self._lock:
            return list(self._tickets)

    def count_pending(self) -> int:
        return len(self._tickets)

    def __len__(self) -> int:
        return len(self._tickets)
