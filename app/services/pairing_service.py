"""
app/services/pairing_service.py

Purpose: WhatsApp pairing orchestration

- Drives one client per attempt through the pairing-code handshake
- Reacts to connection updates: uploads credentials on open, retries on close
- Publishes exactly one outcome to the waiting HTTP caller (first one wins)
- Sends the session id to the linked account and cleans up local files
- PairingManager keeps one session per number and expires stale sessions

Retry policy:
    close (not 401)  -> reconnect after RETRY_BASE_DELAY * attempt seconds,
                        at most MAX_RETRIES times
    close (401)      -> stop, respond 401
"""

import asyncio
import contextlib
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Set

from app.core.config import settings
from app.core.exceptions import PairingInProgressError
from app.core.logging import get_logger
from app.models.pairing_attempt import PairingStatus
from app.schemas.pairing import ConnectionHandler, ConnectionUpdate, PairingOutcome
from app.services.pairing_record_service import create_pairing_record, update_pairing_status
from app.services.process_service import safe_restart
from app.services.upload_service import StorageClient, get_storage_client
from utils.constants import (
    ERROR_AUTH_FAILURE,
    ERROR_CREDS_NOT_FOUND,
    ERROR_INTERNAL,
    ERROR_MAX_RETRIES,
    ERROR_PAIRING_CODE,
    ERROR_PAIRING_TIMEOUT,
    ERROR_RETRIES_EXHAUSTED,
    ERROR_SERVICE_UNAVAILABLE,
    ERROR_UPLOAD,
    ERROR_USER_ID,
    PRIVACY_WARNING_MESSAGE,
    SESSION_CAPTION_TEMPLATE,
    STATUS_LOGGED_OUT,
)
from utils.session_utils import extract_session_id, generate_upload_name, remove_path
from utils.validation_utils import mask_phone_number

logger = get_logger(__name__)

ClientFactory = Callable[[Path, ConnectionHandler], object]
RestartHook = Callable[[], Awaitable[bool]]


def default_client_factory(session_dir: Path, on_connection_update: ConnectionHandler):
    # neonize loads its native library on import; only pay for it when pairing
    from app.services.whatsapp_client import create_whatsapp_client
    return create_whatsapp_client(session_dir, on_connection_update)


class PairingSession:
    """
    One pairing request for one phone number.

    Every connection attempt gets a fresh client over the same session
    directory. Events are tagged with the generation they were registered
    in; once an attempt is closed (or the session finished) its late
    events are ignored.
    """

    def __init__(
        self,
        number: str,
        client_factory: Optional[ClientFactory] = None,
        storage: Optional[StorageClient] = None,
        restart: Optional[RestartHook] = None,
        session_root: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        flush_delay: Optional[float] = None
    ):
        self.number = number
        self.session_dir = Path(session_root or settings.SESSION_ROOT) / number

        self.max_retries = settings.MAX_RETRIES if max_retries is None else max_retries
        self.retry_base_delay = settings.RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
        self.flush_delay = settings.SESSION_FLUSH_DELAY if flush_delay is None else flush_delay

        self._client_factory = client_factory or default_client_factory
        self._storage = storage or get_storage_client()
        self._restart = restart or safe_restart

        self.attempt_id: Optional[str] = None
        self.retry_count = 0
        self.status = PairingStatus.STARTED
        self.finished = False
        self.done = asyncio.Event()

        self._response: asyncio.Future = asyncio.get_running_loop().create_future()
        self._client = None
        self._generation = 0
        self._retry_task: Optional[asyncio.Task] = None
        self._restart_tasks: Set[asyncio.Task] = set()

        self._log_extra = {"number": mask_phone_number(number)}

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    @property
    def response_sent(self) -> bool:
        return self._response.done()

    def respond(self, outcome: PairingOutcome) -> bool:
        """
        Publishes the outcome for the HTTP caller if none was published yet.
        """
        if self._response.done():
            logger.debug(
                f"Response already sent, dropping {outcome.status_code} outcome",
                extra=self._log_extra
            )
            return False

        self._response.set_result(outcome)
        return True

    async def wait_for_response(self, timeout: float) -> PairingOutcome:
        """
        Waits for the first outcome; aborts the session on timeout.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._response), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No pairing outcome after {timeout}s", extra=self._log_extra)
            await self.abort()
            return self._response.result()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Creates the audit record and runs the first attempt."""
        self.attempt_id = await create_pairing_record(self.number)
        await self._attempt(0)

    async def abort(self):
        """Stops a session nobody is waiting for anymore."""
        self.respond(PairingOutcome.error(503, ERROR_PAIRING_TIMEOUT, "PAIRING_TIMEOUT"))
        if self.finished:
            return

        await self.finish(PairingStatus.TIMED_OUT, error=ERROR_PAIRING_TIMEOUT, cleanup=True)

    async def finish(
        self,
        status: PairingStatus,
        error: Optional[str] = None,
        session_link: Optional[str] = None,
        cleanup: bool = False
    ):
        """
        Marks the session terminal, releases the client and records the result.
        """
        if self.finished:
            return

        self.finished = True
        self.status = status
        self._generation += 1

        if self._retry_task is not None and self._retry_task is not asyncio.current_task():
            self._retry_task.cancel()

        await self._disconnect()

        if cleanup and remove_path(self.session_dir):
            logger.info("Session folder removed", extra=self._log_extra)

        if self.attempt_id:
            await update_pairing_status(
                self.attempt_id,
                status,
                retries=self.retry_count,
                session_link=session_link,
                error=error
            )

        logger.info(f"Pairing finished: {status.value}", extra=self._log_extra)
        self.done.set()

    async def _fail(
        self,
        status_code: int,
        message: str,
        code: str,
        status: PairingStatus = PairingStatus.FAILED,
        cleanup: bool = False
    ):
        self.respond(PairingOutcome.error(status_code, message, code))
        await self.finish(status, error=message, cleanup=cleanup)

    async def _set_status(self, status: PairingStatus, retries: Optional[int] = None):
        if self.finished:
            return
        self.status = status
        if self.attempt_id:
            await update_pairing_status(self.attempt_id, status, retries=retries)

    def _restart_in_background(self) -> asyncio.Task:
        # The restart command may restart this process; the outcome goes out first
        task = asyncio.create_task(self._restart())
        self._restart_tasks.add(task)
        task.add_done_callback(self._restart_tasks.discard)
        return task

    async def _disconnect(self):
        client, self._client = self._client, None
        if client is None:
            return

        try:
            await client.disconnect()
        except Exception as e:
            logger.warning(f"Client disconnect failed: {e}", extra=self._log_extra)

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    async def _attempt(self, retry_count: int):
        if self.finished:
            return

        self.retry_count = retry_count
        extra = {**self._log_extra, "attempt": retry_count}

        if retry_count > self.max_retries:
            logger.error("Max retries reached for pairing", extra=extra)
            await self._fail(503, ERROR_MAX_RETRIES, "MAX_RETRIES_REACHED")
            return

        generation = self._generation

        try:
            self._client = self._client_factory(
                self.session_dir,
                self._connection_handler(generation, retry_count)
            )
            await self._client.connect()

            if self.finished:
                await self._disconnect()
                return

            if not await self._client.is_registered():
                try:
                    code = await self._client.request_pairing_code(self.number)
                except Exception as e:
                    logger.error(f"Pairing code request failed: {e}", extra=extra, exc_info=True)
                    await self._fail(500, ERROR_PAIRING_CODE, "PAIRING_CODE_FAILED")
                    return

                logger.info("Pairing code issued", extra=extra)
                self.respond(PairingOutcome.pairing_code(code))
                await self._set_status(PairingStatus.CODE_ISSUED)

        except Exception as e:
            logger.error(f"Pairing attempt failed: {e}", extra=extra, exc_info=True)
            await self._fail(503, ERROR_SERVICE_UNAVAILABLE, "SERVICE_UNAVAILABLE", cleanup=True)
            self._restart_in_background()

    async def _retry_later(self, retry_count: int, delay: float):
        await self._disconnect()
        await asyncio.sleep(delay)
        await self._attempt(retry_count)

    def _connection_handler(self, generation: int, retry_count: int) -> ConnectionHandler:
        async def on_connection_update(update: ConnectionUpdate):
            if self.finished or generation != self._generation:
                logger.debug(f"Ignoring stale connection update: {update.connection}", extra=self._log_extra)
                return

            logger.info(
                f"connection.update -> {update.connection}",
                extra={**self._log_extra, "attempt": retry_count}
            )

            if update.is_open:
                await self._on_open()
            elif update.is_close:
                await self._on_close(update, retry_count)

        return on_connection_update

    async def _on_close(self, update: ConnectionUpdate, retry_count: int):
        # Later events from this client belong to a closed attempt
        self._generation += 1
        extra = {**self._log_extra, "attempt": retry_count}

        if update.status_code == STATUS_LOGGED_OUT:
            logger.error("Auth failure (401), not retrying", extra=extra)
            await self._fail(
                401,
                ERROR_AUTH_FAILURE,
                "AUTHENTICATION_FAILED",
                status=PairingStatus.AUTH_FAILED,
                cleanup=True
            )
            return

        next_retry = retry_count + 1
        if next_retry > self.max_retries:
            logger.error("Exceeded max reconnect attempts", extra=extra)
            await self._fail(503, ERROR_RETRIES_EXHAUSTED, "RETRIES_EXHAUSTED")
            return

        delay = self.retry_base_delay * next_retry
        logger.info(
            f"Scheduling reconnect attempt #{next_retry} in {delay}s "
            f"(status={update.status_code}, reason={update.reason})",
            extra=extra
        )
        await self._set_status(PairingStatus.RETRYING, retries=next_retry)
        self._retry_task = asyncio.create_task(self._retry_later(next_retry, delay))

    async def _on_open(self):
        # The session is delivered from here on; ignore further updates
        self._generation += 1
        client = self._client
        await self._set_status(PairingStatus.CONNECTED)

        try:
            # Give the library time to flush the credential store
            await asyncio.sleep(self.flush_delay)

            creds_path = Path(client.creds_path)
            if not creds_path.exists():
                logger.error("Credentials file not found after connection open", extra=self._log_extra)
                await self._fail(500, ERROR_CREDS_NOT_FOUND, "CREDENTIALS_NOT_FOUND")
                return

            user_jid = await client.get_user_jid()
            if not user_jid:
                logger.error("User JID not available", extra=self._log_extra)
                await self._fail(500, ERROR_USER_ID, "USER_ID_UNAVAILABLE")
                return

            upload_name = generate_upload_name(creds_path.suffix.lstrip(".") or "json")
            try:
                url = await self._storage.upload_file(creds_path, upload_name)
            except Exception as e:
                logger.error(f"Credential upload failed: {e}", extra=self._log_extra)
                await self._fail(500, ERROR_UPLOAD, "UPLOAD_FAILED")
                return

            session_id = extract_session_id(url, self._storage.public_url)
            await self._send_confirmation(client, user_jid, session_id)

            await self.finish(PairingStatus.COMPLETED, session_link=session_id, cleanup=True)
            self.respond(PairingOutcome.session_link(session_id))

        except Exception as e:
            logger.error(f"Error in connection open handler: {e}", extra=self._log_extra, exc_info=True)
            await self._fail(500, ERROR_INTERNAL, "INTERNAL_ERROR", cleanup=True)
            self._restart_in_background()

    async def _send_confirmation(self, client, user_jid, session_id: str) -> int:
        """
        Sends the session id messages; each failure is logged on its own.

        Returns:
            Number of messages sent
        """
        caption = SESSION_CAPTION_TEMPLATE.format(
            bot_name=settings.BOT_NAME,
            session_id=session_id,
            support_link=settings.SUPPORT_LINK
        )
        sends = (
            ("image", client.send_image, (user_jid, settings.SESSION_IMAGE_URL, caption)),
            ("session id", client.send_text, (user_jid, session_id)),
            ("privacy warning", client.send_text, (user_jid, PRIVACY_WARNING_MESSAGE)),
        )

        sent = 0
        for label, send, args in sends:
            try:
                await send(*args)
                sent += 1
            except Exception as e:
                logger.error(f"Sending {label} message failed: {e}", extra=self._log_extra)

        return sent


class PairingManager:
    """
    Registry of running pairing sessions, one per phone number.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[str], PairingSession]] = None,
        session_ttl: Optional[float] = None,
        restart: Optional[RestartHook] = None
    ):
        self._session_factory = session_factory or PairingSession
        self.session_ttl = settings.PAIRING_SESSION_TTL if session_ttl is None else session_ttl
        self._restart = restart or safe_restart
        self._sessions: Dict[str, PairingSession] = {}
        self._tasks: Set[asyncio.Task] = set()

    def is_active(self, number: str) -> bool:
        return number in self._sessions

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def pair(self, number: str, timeout: Optional[float] = None) -> PairingOutcome:
        """
        Starts pairing for a number and waits for its first outcome.

        Raises:
            PairingInProgressError: If the number already has a running session
        """
        if number in self._sessions:
            raise PairingInProgressError(details={"number": mask_phone_number(number)})

        session = self._session_factory(number)
        self._sessions[number] = session
        self._spawn(self._supervise(session))

        return await session.wait_for_response(timeout or settings.PAIR_RESPONSE_TIMEOUT)

    async def _supervise(self, session: PairingSession):
        # start() can hang inside the client library, so the TTL covers it too
        starter = asyncio.create_task(session.start())
        try:
            await asyncio.wait_for(session.done.wait(), timeout=self.session_ttl)
        except asyncio.TimeoutError:
            logger.warning(
                f"Pairing session expired after {self.session_ttl}s",
                extra={"number": mask_phone_number(session.number)}
            )
            await session.abort()
        finally:
            if self._sessions.get(session.number) is session:
                del self._sessions[session.number]
            if not starter.done():
                starter.cancel()

        # Surfaces a crash in start() to _on_task_done
        with contextlib.suppress(asyncio.CancelledError):
            await starter

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return

        exc = task.exception()
        if exc is not None:
            logger.error("Pairing task crashed", exc_info=exc)
            self._spawn(self._restart())

    async def shutdown(self):
        """Aborts every running session and waits for background tasks."""
        for session in list(self._sessions.values()):
            await session.abort()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._sessions.clear()


# Global pairing manager instance
_pairing_manager: Optional[PairingManager] = None


def get_pairing_manager() -> PairingManager:
    """Get or create the global pairing manager."""
    global _pairing_manager
    if _pairing_manager is None:
        _pairing_manager = PairingManager()
    return _pairing_manager


async def close_pairing_manager():
    """Abort running sessions and drop the global manager."""
    global _pairing_manager
    if _pairing_manager:
        await _pairing_manager.shutdown()
        _pairing_manager = None
