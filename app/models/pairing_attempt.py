"""
app/models/pairing_attempt.py

Purpose: Pairing audit model

- Tracks each pairing request from HTTP call to completion
- Stores status, reconnect count, session link and last error
"""

from enum import Enum


class PairingStatus(str, Enum):
    """Lifecycle of a pairing request."""
    STARTED = "started"
    CODE_ISSUED = "code_issued"
    RETRYING = "retrying"
    CONNECTED = "connected"
    COMPLETED = "completed"
    AUTH_FAILED = "auth_failed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PairingStatus.COMPLETED,
            PairingStatus.AUTH_FAILED,
            PairingStatus.FAILED,
            PairingStatus.TIMED_OUT,
        )
