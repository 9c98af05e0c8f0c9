"""
app/services/whatsapp_client.py

Purpose: WhatsApp client wrapper (neonize)

- Opens a client over a per-number credential store
- Requests pairing codes
- Translates library events into connection updates (open / close)
- Sends confirmation messages to the linked account
"""

import asyncio
import contextlib
from pathlib import Path
from typing import Optional

from neonize.aioze import client as neonize_client
from neonize.aioze import events as neonize_events
from neonize.aioze.client import NewAClient
from neonize.events import (
    ConnectedEv,
    ConnectFailureEv,
    DisconnectedEv,
    LoggedOutEv,
    PairStatusEv,
)
from neonize.utils import build_jid

from app.core.config import settings
from app.core.logging import get_logger
from app.schemas.pairing import ConnectionHandler, ConnectionUpdate
from utils.constants import STATUS_LOGGED_OUT

logger = get_logger(__name__)


class WhatsAppClient:
    """
    Thin wrapper around neonize's async client.

    One instance per connection attempt. The credential store lives at
    <session_dir>/<CREDS_FILENAME> and is created by the library.
    """

    def __init__(self, session_dir: Path, on_connection_update: ConnectionHandler):
        self.session_dir = Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.creds_path = self.session_dir / settings.CREDS_FILENAME

        self._on_connection_update = on_connection_update
        self._client = NewAClient(str(self.creds_path))
        self._idle_task: Optional[asyncio.Task] = None
        self._paired_user: Optional[str] = None

        self._register_events()

    def _register_events(self):
        client = self._client

        @client.event(ConnectedEv)
        async def on_connected(_client: NewAClient, _ev: ConnectedEv) -> None:
            await self._on_connection_update(ConnectionUpdate("open"))

        @client.event(PairStatusEv)
        async def on_pair_status(_client: NewAClient, ev: PairStatusEv) -> None:
            self._paired_user = ev.ID.User
            logger.info("Device paired")

        @client.event(DisconnectedEv)
        async def on_disconnected(_client: NewAClient, _ev: DisconnectedEv) -> None:
            await self._on_connection_update(ConnectionUpdate("close", reason="disconnected"))

        @client.event(LoggedOutEv)
        async def on_logged_out(_client: NewAClient, _ev: LoggedOutEv) -> None:
            await self._on_connection_update(
                ConnectionUpdate("close", status_code=STATUS_LOGGED_OUT, reason="logged out")
            )

        @client.event(ConnectFailureEv)
        async def on_connect_failure(_client: NewAClient, ev: ConnectFailureEv) -> None:
            await self._on_connection_update(
                ConnectionUpdate("close", status_code=int(ev.Reason), reason=ev.Message or "connect failure")
            )

    async def connect(self):
        """Connects and keeps the event loop of the library running in the background."""
        # neonize keeps module-level loop references; bind them to the running loop
        loop = asyncio.get_running_loop()
        neonize_events.event_global_loop = loop
        neonize_client.event_global_loop = loop

        await self._client.connect()
        self._idle_task = asyncio.ensure_future(self._client.idle())

    async def is_registered(self) -> bool:
        """True if the credential store already holds a logged-in device."""
        return bool(await self._client.is_logged_in)

    async def request_pairing_code(self, number: str) -> str:
        """Asks WhatsApp for a pairing code for the given bare number."""
        return await self._client.PairPhone(number, show_push_notification=True)

    async def get_user_jid(self):
        """
        Returns the account JID without the device part, or None.
        """
        user = self._paired_user
        if not user:
            try:
                me = await self._client.get_me()
                user = me.JID.User
            except Exception as e:
                logger.warning(f"Could not read own JID: {e}")
                return None

        if not user:
            return None
        return build_jid(user)

    async def send_text(self, jid, text: str):
        await self._client.send_message(jid, text)

    async def send_image(self, jid, image_url: str, caption: str):
        await self._client.send_image(jid, image_url, caption=caption)

    async def disconnect(self):
        """Closes the connection; safe to call more than once."""
        try:
            await self._client.disconnect()
        except Exception as e:
            logger.debug(f"Disconnect raised: {e}")

        if self._idle_task is not None:
            self._idle_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await self._idle_task
            self._idle_task = None


def create_whatsapp_client(session_dir: Path, on_connection_update: ConnectionHandler) -> WhatsAppClient:
    """Default client factory used by the pairing service."""
    return WhatsAppClient(session_dir, on_connection_update)
