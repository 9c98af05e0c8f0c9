import asyncio
from types import SimpleNamespace

import pytest
from neonize.events import (
    ConnectedEv,
    ConnectFailureEv,
    DisconnectedEv,
    LoggedOutEv,
    PairStatusEv,
)

from app.models.pairing_attempt import PairingStatus
from app.services import whatsapp_client
from app.services.whatsapp_client import WhatsAppClient, create_whatsapp_client

NUMBER = "919876543210"


class StubNeonizeClient:
    """Records the event handlers WhatsAppClient registers on the library client."""

    instances = []
    logged_in = False

    def __init__(self, name, *args, **kwargs):
        self.name = name
        self.handlers = {}
        self.me = None
        self.connected = False
        self.disconnected = False
        StubNeonizeClient.instances.append(self)

    def event(self, event_type):
        def register(handler):
            self.handlers[event_type] = handler
            return handler
        return register

    async def fire(self, event_type, ev=None):
        await self.handlers[event_type](self, ev or SimpleNamespace())

    async def connect(self):
        self.connected = True

    async def idle(self):
        await asyncio.Event().wait()

    @property
    def is_logged_in(self):
        return self._logged_in()

    async def _logged_in(self):
        return self.logged_in

    async def PairPhone(self, number, show_push_notification=False):
        return "ABCD-1234"

    async def get_me(self):
        if self.me is None:
            raise RuntimeError("not logged in")
        return self.me

    async def disconnect(self):
        self.disconnected = True


class RegisteredStubClient(StubNeonizeClient):
    logged_in = True


@pytest.fixture
def stub_neonize(monkeypatch):
    StubNeonizeClient.instances = []
    monkeypatch.setattr(whatsapp_client, "NewAClient", StubNeonizeClient)
    monkeypatch.setattr(whatsapp_client.neonize_events, "event_global_loop", None, raising=False)
    monkeypatch.setattr(whatsapp_client.neonize_client, "event_global_loop", None, raising=False)
    return StubNeonizeClient


@pytest.fixture
def recorded_client(tmp_path, stub_neonize):
    updates = []

    async def on_update(update):
        updates.append(update)

    client = WhatsAppClient(tmp_path / NUMBER, on_update)
    return client, StubNeonizeClient.instances[-1], updates


def test_registers_connection_events(recorded_client):
    client, stub, _ = recorded_client

    assert set(stub.handlers) == {ConnectedEv, PairStatusEv, DisconnectedEv, LoggedOutEv, ConnectFailureEv}
    assert stub.name == str(client.creds_path)
    assert client.session_dir.is_dir()


@pytest.mark.asyncio
async def test_connected_event_opens(recorded_client):
    _, stub, updates = recorded_client

    await stub.fire(ConnectedEv)

    assert len(updates) == 1
    assert updates[0].is_open
    assert updates[0].status_code is None


@pytest.mark.asyncio
async def test_disconnected_event_closes(recorded_client):
    _, stub, updates = recorded_client

    await stub.fire(DisconnectedEv)

    assert updates[0].is_close
    assert updates[0].status_code is None
    assert updates[0].reason == "disconnected"


@pytest.mark.asyncio
async def test_logged_out_event_closes_with_401(recorded_client):
    _, stub, updates = recorded_client

    await stub.fire(LoggedOutEv)

    assert updates[0].is_close
    assert updates[0].status_code == 401


@pytest.mark.asyncio
async def test_connect_failure_carries_reason_code(recorded_client):
    _, stub, updates = recorded_client

    await stub.fire(ConnectFailureEv, SimpleNamespace(Reason=403, Message="main device gone"))

    assert updates[0].is_close
    assert updates[0].status_code == 403
    assert updates[0].reason == "main device gone"


@pytest.mark.asyncio
async def test_user_jid_from_pair_status(recorded_client):
    client, stub, updates = recorded_client

    await stub.fire(PairStatusEv, SimpleNamespace(ID=SimpleNamespace(User=NUMBER)))
    jid = await client.get_user_jid()

    assert jid.User == NUMBER
    assert jid.Server == "s.whatsapp.net"
    assert updates == []


@pytest.mark.asyncio
async def test_user_jid_falls_back_to_own_device(recorded_client):
    client, stub, _ = recorded_client

    assert await client.get_user_jid() is None

    stub.me = SimpleNamespace(JID=SimpleNamespace(User=NUMBER))
    jid = await client.get_user_jid()
    assert jid.User == NUMBER


@pytest.mark.asyncio
async def test_connect_pair_and_disconnect(recorded_client):
    client, stub, _ = recorded_client

    await client.connect()
    assert stub.connected
    assert whatsapp_client.neonize_events.event_global_loop is asyncio.get_running_loop()

    assert await client.is_registered() is False
    assert await client.request_pairing_code(NUMBER) == "ABCD-1234"

    await client.disconnect()
    assert stub.disconnected
    assert client._idle_task is None


@pytest.mark.asyncio
async def test_logged_out_event_stops_pairing(make_session, monkeypatch, stub_neonize):
    monkeypatch.setattr(whatsapp_client, "NewAClient", RegisteredStubClient)
    session = make_session(create_whatsapp_client)

    await session.start()
    stub = StubNeonizeClient.instances[-1]
    await stub.fire(LoggedOutEv)
    outcome = await session.wait_for_response(1)

    assert outcome.status_code == 401
    assert outcome.body["code"] == "AUTHENTICATION_FAILED"
    assert session.status == PairingStatus.AUTH_FAILED
    assert len(StubNeonizeClient.instances) == 1
    assert stub.disconnected
    assert not session.session_dir.exists()
