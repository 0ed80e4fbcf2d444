from datetime import datetime, timedelta, timezone
from threading import Thread

from queuedesk.dispatch.models import Category, Ticket
from queuedesk.dispatch.queue import CategoryQueue

T0 = datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)


def _tickets(count: int, prefix: str = "GEN") -> list[Ticket]:
    return [
        Ticket(code=f"{prefix}-{index:03d}", category_id=1, client_id=f"c-{index}", generated_at=T0 + timedelta(minutes=index))
        for index in range(1, count + 1)
    ]


def test_dequeue_preserves_insertion_order_then_reports_empty():
    queue = CategoryQueue()
    tickets = _tickets(5)
    for ticket in tickets:
        assert queue.enqueue(ticket)

    assert [queue.dequeue() for _ in tickets] == tickets
    assert queue.dequeue() is None


def test_enqueue_rejects_missing_ticket_and_inactive_queue():
    queue = CategoryQueue()
    assert not queue.enqueue(None)

    queue.deactivate()
    assert not queue.enqueue(_tickets(1)[0])
    assert queue.count_pending() == 0


def test_inactive_queue_still_dequeues_existing_tickets():
    tickets = _tickets(3)
    queue = CategoryQueue(tickets)
    assert queue.deactivate()
    assert queue.deactivate()

    assert queue.count_pending() == 3
    assert [queue.dequeue() for _ in range(3)] == tickets


def test_restore_returns_dequeued_ticket_to_the_head():
    tickets = _tickets(3)
    queue = CategoryQueue(tickets)
    head = queue.dequeue()
    queue.deactivate()

    queue.restore(head)

    assert queue.peek_all() == tickets
    assert queue.position_of(head.code) == 1
    assert not queue.enqueue(_tickets(1, prefix="PAY")[0])


def test_activate_and_deactivate_are_idempotent_and_keep_order():
    tickets = _tickets(2)
    queue = CategoryQueue(tickets)
    queue.deactivate()
    queue.activate()
    queue.activate()
    assert queue.active
    assert queue.peek_all() == tickets


def test_peek_all_returns_a_copy():
    queue = CategoryQueue(_tickets(3))
    snapshot = queue.peek_all()
    snapshot.clear()
    assert queue.count_pending() == 3


def test_remove_mutates_live_queue_and_updates_positions():
    first, second, third = _tickets(3)
    queue = CategoryQueue([first, second, third])

    assert queue.position_of(third.code) == 3
    assert queue.remove(second.code)
    assert not queue.remove(second.code)
    assert queue.position_of(third.code) == 2
    assert queue.position_of(second.code) == -1
    assert len(queue) == 2


def test_concurrent_dequeues_hand_out_each_ticket_once():
    tickets = _tickets(200)
    queue = CategoryQueue(tickets)
    taken: list[Ticket] = []

    def worker() -> None:
        while (ticket := queue.dequeue()) is not None:
            taken.append(ticket)

    threads = [Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(ticket.code for ticket in taken) == [ticket.code for ticket in tickets]


def test_category_issues_padded_sequential_codes():
    category = Category(id=1, name="General", prefix="GEN")
    assert category.issue_code() == "GEN-001"
    assert category.issue_code() == "GEN-002"
    assert category.issue_code(width=5) == "GEN-00003"


def test_category_employee_membership_has_no_duplicates():
    category = Category(id=1, name="General", prefix="GEN")
    assert category.assign_employee("emp-1")
    assert not category.assign_employee("emp-1")
    assert not category.assign_employee(None)
    assert category.remove_employee("emp-1")
    assert not category.remove_employee("emp-1")
