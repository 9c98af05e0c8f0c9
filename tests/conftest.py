import asyncio
from pathlib import Path

import pytest

from app.core.exceptions import UploadError
from app.schemas.pairing import ConnectionUpdate
from app.services.pairing_service import PairingSession
from app.services.upload_service import MemoryStorageClient

TEST_NUMBER = "919876543210"
TEST_JID = f"{TEST_NUMBER}@s.whatsapp.net"
PUBLIC_URL = "https://files.example.com/file"


class FakeWhatsAppClient:
    """Stands in for WhatsAppClient; connection updates are emitted by the test."""

    def __init__(
        self,
        session_dir,
        on_connection_update,
        registered=False,
        pairing_code="ABCD-1234",
        pairing_error=None,
        connect_error=None,
        connect_hangs=False,
        user_jid=TEST_JID,
        write_creds=True,
        send_error=None,
    ):
        self.session_dir = Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.creds_path = self.session_dir / "creds.db"
        self.handler = on_connection_update

        self.registered = registered
        self.pairing_code = pairing_code
        self.pairing_error = pairing_error
        self.connect_error = connect_error
        self.connect_hangs = connect_hangs
        self.user_jid = user_jid
        self.write_creds = write_creds
        self.send_error = send_error

        self.requested_for = None
        self.sent = []
        self.disconnected = False

    async def connect(self):
        if self.connect_hangs:
            await asyncio.Event().wait()
        if self.connect_error:
            raise self.connect_error
        if self.write_creds:
            self.creds_path.write_bytes(b"sqlite creds")

    async def is_registered(self):
        return self.registered

    async def request_pairing_code(self, number):
        self.requested_for = number
        if self.pairing_error:
            raise self.pairing_error
        return self.pairing_code

    async def get_user_jid(self):
        return self.user_jid

    async def send_image(self, jid, image_url, caption):
        if self.send_error:
            raise self.send_error
        self.sent.append(("image", jid, caption))

    async def send_text(self, jid, text):
        if self.send_error:
            raise self.send_error
        self.sent.append(("text", jid, text))

    async def disconnect(self):
        self.disconnected = True

    async def emit(self, connection, status_code=None):
        await self.handler(ConnectionUpdate(connection, status_code=status_code))


class FakeClientFactory:
    """Client factory recording every client it builds."""

    def __init__(self, **client_kwargs):
        self.client_kwargs = client_kwargs
        self.clients = []

    def __call__(self, session_dir, on_connection_update):
        client = FakeWhatsAppClient(session_dir, on_connection_update, **self.client_kwargs)
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


class FailingStorageClient:
    public_url = PUBLIC_URL

    async def upload_file(self, path, name):
        raise UploadError(details="bucket unavailable")


class RestartRecorder:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return True


async def wait_until(predicate, timeout=1.0):
    """Yields to the event loop until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def storage():
    return MemoryStorageClient(PUBLIC_URL)


@pytest.fixture
def restart_hook():
    return RestartRecorder()


@pytest.fixture
def make_session(tmp_path, storage, restart_hook):
    """Builds PairingSessions with no delays; call from inside a running loop."""
    def _make(factory, number=TEST_NUMBER, max_retries=5, storage_client=None, restart=None):
        return PairingSession(
            number,
            client_factory=factory,
            storage=storage_client or storage,
            restart=restart or restart_hook,
            session_root=str(tmp_path),
            max_retries=max_retries,
            retry_base_delay=0,
            flush_delay=0,
        )
    return _make


@pytest.fixture
def fake_factory():
    """The FakeClientFactory class; instantiate with FakeWhatsAppClient kwargs."""
    return FakeClientFactory


@pytest.fixture
def failing_storage():
    return FailingStorageClient()


@pytest.fixture
def until():
    return wait_until
