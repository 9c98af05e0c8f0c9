from fastapi.testclient import TestClient
import pytest

from app.main import app
from app.core.exceptions import PairingInProgressError
from app.schemas.pairing import PairingOutcome
from app.services.pairing_service import PairingManager, PairingSession, get_pairing_manager
from app.services.upload_service import MemoryStorageClient

client = TestClient(app)


class StubManager:
    """Records requested numbers and returns a canned outcome."""

    def __init__(self, outcome=None, error=None):
        self.outcome = outcome or PairingOutcome.pairing_code("ABCD-1234")
        self.error = error
        self.numbers = []

    async def pair(self, number, timeout=None):
        self.numbers.append(number)
        if self.error:
            raise self.error
        return self.outcome


@pytest.fixture
def stub_manager():
    manager = StubManager()
    app.dependency_overrides[get_pairing_manager] = lambda: manager
    yield manager
    app.dependency_overrides.clear()


def test_missing_number(stub_manager):
    response = client.get("/pair")
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Missing 'number' query parameter"
    assert data["code"] == "MISSING_NUMBER"
    assert stub_manager.numbers == []


def test_empty_number(stub_manager):
    response = client.get("/pair", params={"number": ""})
    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_NUMBER"


def test_number_without_digits(stub_manager):
    response = client.get("/pair", params={"number": "abc-+"})
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid phone number"
    assert data["code"] == "INVALID_NUMBER"


def test_returns_pairing_code_for_normalised_number(stub_manager):
    response = client.get("/pair", params={"number": "+91 98765-43210"})
    assert response.status_code == 200
    assert response.json() == {"pairingCode": "ABCD-1234"}
    assert stub_manager.numbers == ["919876543210"]


def test_prefixed_route(stub_manager):
    response = client.get("/api/v1/pair", params={"number": "919876543210"})
    assert response.status_code == 200
    assert "X-Process-Time" in response.headers


def test_session_link_outcome(stub_manager):
    stub_manager.outcome = PairingOutcome.session_link("aBcDeF42.db")
    response = client.get("/pair", params={"number": "919876543210"})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "sessionLink": "aBcDeF42.db"}


@pytest.mark.parametrize("status_code,message,code", [
    (401, "Authentication failure", "AUTHENTICATION_FAILED"),
    (500, "Failed to request pairing code", "PAIRING_CODE_FAILED"),
    (503, "Unable to connect after retries", "RETRIES_EXHAUSTED"),
])
def test_error_outcomes_pass_through(stub_manager, status_code, message, code):
    stub_manager.outcome = PairingOutcome.error(status_code, message, code)
    response = client.get("/pair", params={"number": "919876543210"})
    assert response.status_code == status_code
    assert response.json() == {"error": message, "code": code, "details": None}


def test_pairing_in_progress(stub_manager):
    stub_manager.error = PairingInProgressError()
    response = client.get("/pair", params={"number": "919876543210"})
    assert response.status_code == 409
    assert response.json()["code"] == "PAIRING_IN_PROGRESS"


def test_end_to_end_with_fake_client(tmp_path, fake_factory):
    factory = fake_factory(pairing_code="QWER-5678")

    def session_factory(number):
        return PairingSession(
            number,
            client_factory=factory,
            storage=MemoryStorageClient(),
            restart=None,
            session_root=str(tmp_path),
            retry_base_delay=0,
            flush_delay=0,
        )

    manager = PairingManager(session_factory=session_factory)
    app.dependency_overrides[get_pairing_manager] = lambda: manager

    try:
        with TestClient(app) as test_client:
            response = test_client.get("/pair", params={"number": "+44 7700 900123"})
            assert response.status_code == 200
            assert response.json() == {"pairingCode": "QWER-5678"}
            assert factory.last.requested_for == "447700900123"
            assert (tmp_path / "447700900123").exists()
            test_client.portal.call(manager.shutdown)
    finally:
        app.dependency_overrides.clear()


def test_health_reports_disabled_database():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["checks"]["database"] == "disabled"
    assert "active_pairings" in data["checks"]


def test_liveness_and_readiness():
    assert client.get("/live").json() == {"status": "alive"}
    assert client.get("/ready").json() == {"status": "ready"}
