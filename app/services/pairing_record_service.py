"""
app/services/pairing_record_service.py

Purpose: Pairing audit trail

- Creates one record per pairing request
- Updates status, reconnect count, session link and errors
- Skipped entirely when MongoDB is disabled or not connected
- Database failures are logged, never raised into the pairing flow
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from app.db.mongo import get_pairing_attempts_collection, is_connected
from app.models.pairing_attempt import PairingStatus
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


def _enabled() -> bool:
    if not is_connected():
        logger.debug("MongoDB not connected, pairing audit skipped")
        return False
    return True


async def create_pairing_record(number: str) -> str:
    """
    Creates the audit record for a new pairing request.

    Args:
        number: Normalised phone number

    Returns:
        attempt_id of the new record (generated even if nothing was stored)
    """
    attempt_id = str(uuid.uuid4())

    if not _enabled():
        return attempt_id

    with LogContext(number=number):
        try:
            now = datetime.now(timezone.utc)
            await get_pairing_attempts_collection().insert_one({
                "attempt_id": attempt_id,
                "number": number,
                "status": PairingStatus.STARTED.value,
                "retries": 0,
                "session_link": None,
                "error": None,
                "created_at": now,
                "updated_at": now,
                "completed_at": None,
            })
            logger.debug("Pairing record created")
        except Exception as e:
            logger.error(f"Failed to create pairing record: {e}", exc_info=True)

    return attempt_id


async def update_pairing_status(
    attempt_id: str,
    status: PairingStatus,
    retries: Optional[int] = None,
    session_link: Optional[str] = None,
    error: Optional[str] = None
) -> bool:
    """
    Updates the status of a pairing record.

    Args:
        attempt_id: Record id returned by create_pairing_record
        status: New status
        retries: Reconnect attempts used so far
        session_link: Session id shared with the user
        error: Error message for failed outcomes

    Returns:
        True if a record was modified
    """
    if not _enabled():
        return False

    now = datetime.now(timezone.utc)
    fields: Dict[str, Any] = {"status": status.value, "updated_at": now}
    if retries is not None:
        fields["retries"] = retries
    if session_link is not None:
        fields["session_link"] = session_link
    if error is not None:
        fields["error"] = error
    if status.is_terminal:
        fields["completed_at"] = now

    try:
        result = await get_pairing_attempts_collection().update_one(
            {"attempt_id": attempt_id},
            {"$set": fields}
        )
        return result.modified_count > 0
    except Exception as e:
        logger.error(f"Failed to update pairing record {attempt_id}: {e}", exc_info=True)
        return False
