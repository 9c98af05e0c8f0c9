from pydantic import BaseModel, Field
from typing import Optional, Any

class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None

class PairingCodeResponse(BaseModel):
    """
    Returned when the client library issued a pairing code.
    """
    pairing_code: str = Field(..., alias="pairingCode")

    model_config = {"populate_by_name": True}

class SessionLinkResponse(BaseModel):
    """
    Returned when an already registered session was uploaded.
    """
    ok: bool = True
    session_link: str = Field(..., alias="sessionLink")

    model_config = {"populate_by_name": True}
