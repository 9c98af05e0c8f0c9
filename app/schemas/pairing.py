"""
app/schemas/pairing.py

Purpose: Pairing data shapes

- ConnectionUpdate: connection state change reported by a WhatsApp client
- PairingOutcome: the single HTTP answer a pairing session publishes
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from app.schemas.response import ErrorResponse, PairingCodeResponse, SessionLinkResponse


@dataclass
class ConnectionUpdate:
    """Connection state change reported by the client."""
    connection: str  # "open" or "close"
    status_code: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.connection == "open"

    @property
    def is_close(self) -> bool:
        return self.connection == "close"


ConnectionHandler = Callable[[ConnectionUpdate], Awaitable[None]]


@dataclass
class PairingOutcome:
    """
    Status code and JSON body for the waiting HTTP caller.

    Error outcomes carry 'error' and 'code' keys so they render like
    every other ErrorResponse.
    """
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    @classmethod
    def pairing_code(cls, code: str) -> "PairingOutcome":
        return cls(200, PairingCodeResponse(pairing_code=code).model_dump(by_alias=True))

    @classmethod
    def session_link(cls, session_id: str) -> "PairingOutcome":
        return cls(200, SessionLinkResponse(session_link=session_id).model_dump(by_alias=True))

    @classmethod
    def error(cls, status_code: int, message: str, code: str) -> "PairingOutcome":
        return cls(status_code, ErrorResponse(error=message, code=code).model_dump())
