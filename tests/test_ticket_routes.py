import pytest
from fastapi.testclient import TestClient

from queuedesk.db.store import InMemoryDispatchStore, PersistenceError
from queuedesk.dependencies.auth import TokenRegistry
from queuedesk.dispatch.administration import hash_password
from queuedesk.dispatch.service import QueueDeskService
from queuedesk.main import create_app


class FailingStore(InMemoryDispatchStore):
    async def flush(self, state):
        raise PersistenceError("database unavailable")


@pytest.fixture
def app(queue_service, state):
    state.staff["emp-1"].password_hash = hash_password("ada-pw")
    queue_service.staff.register_administrator("admin", "Root", "root-pw")
    application = create_app()
    application.state.queue_service = queue_service
    application.state.token_registry = TokenRegistry()
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def _login(client: TestClient, staff_id: str, password: str) -> dict[str, str]:
    response = client.post("/auth/login", json={"staff_id": staff_id, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_ping(client):
    assert client.get("/ping").json() == {"status": "ok"}
    assert client.get("/ping/secure").status_code == 401


def test_login_rejects_bad_credentials(client):
    response = client.post("/auth/login", json={"staff_id": "emp-1", "password": "wrong"})
    assert response.status_code == 401


def test_logout_revokes_token(client):
    headers = _login(client, "emp-1", "ada-pw")
    assert client.get("/ping/secure", headers=headers).json()["user"] == "emp-1"

    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert client.get("/ping/secure", headers=headers).status_code == 401


def test_client_creates_ticket_and_checks_position(client):
    first = client.post("/tickets", json={"category_id": 1, "client_id": "walk-in-1"})
    second = client.post("/tickets", json={"category_id": 1, "client_id": "walk-in-2"})

    assert first.status_code == 201
    assert first.json()["code"] == "GEN-001"
    assert first.json()["status"] == "waiting"
    assert second.json()["code"] == "GEN-002"
    assert client.get("/tickets/GEN-002/position").json() == {"code": "GEN-002", "position": 2}
    assert [ticket["code"] for ticket in client.get("/categories/1/queue").json()] == ["GEN-001", "GEN-002"]
    assert [ticket["code"] for ticket in client.get("/clients/walk-in-1/tickets").json()] == ["GEN-001"]


def test_create_ticket_error_mapping(client, queue_service):
    assert client.post("/tickets", json={"category_id": 99, "client_id": "c"}).status_code == 404
    assert client.post("/tickets", json={"category_id": 1, "client_id": ""}).status_code == 422

    queue_service.categories.deactivate_category(2)
    assert client.post("/tickets", json={"category_id": 2, "client_id": "c"}).status_code == 409
    assert [category["prefix"] for category in client.get("/categories").json()] == ["GEN"]


def test_cancel_ticket(client):
    client.post("/tickets", json={"category_id": 1, "client_id": "c"})

    response = client.post("/tickets/GEN-001/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert client.post("/tickets/GEN-001/cancel").status_code == 409
    assert client.post("/tickets/GEN-404/cancel").status_code == 404
    assert client.get("/tickets/GEN-001/position").json()["position"] == -1


def test_employee_serves_next_ticket(client, clock):
    client.post("/tickets", json={"category_id": 2, "client_id": "c"})
    headers = _login(client, "emp-1", "ada-pw")

    clock.advance(minutes=3)
    assigned = client.post("/employees/emp-1/next", headers=headers)
    assert assigned.status_code == 200
    assert assigned.json()["ticket"]["code"] == "PAY-001"
    assert assigned.json()["ticket"]["waiting_minutes"] == 3
    assert client.get("/display").json()["message"] == "Ticket PAY-001 please go to station 1"
    assert client.get("/employees/emp-1", headers=headers).json()["availability"] == "busy"
    assert client.post("/employees/emp-1/pause", headers=headers).status_code == 409

    clock.advance(minutes=8)
    completed = client.post("/employees/emp-1/tickets/PAY-001/complete", headers=headers)
    assert completed.status_code == 200
    assert completed.json()["service_minutes"] == 8
    assert client.post("/employees/emp-1/tickets/PAY-001/complete", headers=headers).status_code == 409
    assert client.post("/employees/emp-1/next", headers=headers).json() == {"ticket": None}
    assert [t["code"] for t in client.get("/employees/emp-1/tickets", headers=headers).json()] == ["PAY-001"]


def test_employee_routes_require_matching_identity(client, queue_service):
    queue_service.staff.register_employee("emp-2", "Grace", "grace-pw")
    headers = _login(client, "emp-2", "grace-pw")

    assert client.post("/employees/emp-1/next").status_code == 401
    assert client.post("/employees/emp-1/next", headers=headers).status_code == 403
    assert client.post("/employees/emp-2/resume", headers=headers).json()["availability"] == "available"

    admin = _login(client, "admin", "root-pw")
    assert client.get("/employees/ghost", headers=admin).status_code == 404
    assert client.post("/employees/emp-1/pause", headers=admin).json()["availability"] == "paused"


def test_flush_failure_maps_to_service_unavailable(state, clock, metrics):
    app = create_app()
    app.state.queue_service = QueueDeskService(state, FailingStore(state), clock=clock, metrics=metrics)
    client = TestClient(app)

    response = client.post("/tickets", json={"category_id": 1, "client_id": "c"})

    assert response.status_code == 503
    assert "GEN-001" in state.tickets


def test_missing_service_is_unavailable():
    app = create_app()
    app.state.queue_service = None
    client = TestClient(app)

    assert client.get("/categories").status_code == 503
