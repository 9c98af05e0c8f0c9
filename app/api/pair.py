"""
app/api/pair.py

Purpose: Pairing code endpoint

- Validates and normalises the 'number' query parameter
- Starts a pairing session through the pairing manager
- Returns the first outcome: pairing code, session link or error
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional

from app.core.exceptions import InvalidNumberError, MissingNumberError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse, PairingCodeResponse
from app.services.pairing_service import PairingManager, get_pairing_manager
from utils.validation_utils import mask_phone_number, normalize_phone_number

logger = get_logger(__name__)
router = APIRouter()


@router.get(
    "/pair",
    responses={
        200: {"model": PairingCodeResponse, "description": "Pairing code issued (or SessionLinkResponse)"},
        400: {"model": ErrorResponse, "description": "Missing or invalid number"},
        401: {"model": ErrorResponse, "description": "Authentication failure"},
        409: {"model": ErrorResponse, "description": "Pairing already running for this number"},
        500: {"model": ErrorResponse, "description": "Internal error"},
        503: {"model": ErrorResponse, "description": "Retries exhausted or service unavailable"},
    },
)
async def request_pairing_code(
    number: Optional[str] = Query(None, description="Phone number with country code"),
    manager: PairingManager = Depends(get_pairing_manager),
):
    """
    Requests a WhatsApp pairing code for a phone number.

    Separators and '+' are ignored: "+91 98765-43210" -> "919876543210".
    The response is the first outcome of the pairing session; the rest
    of the handshake (credential upload, session id messages) continues
    in the background once the user enters the code.
    """
    if not number:
        raise MissingNumberError()

    normalized = normalize_phone_number(number)
    if not normalized:
        raise InvalidNumberError()

    logger.info(f"📱 Pairing requested for {mask_phone_number(normalized)}")

    outcome = await manager.pair(normalized)

    if outcome.is_error:
        logger.warning(
            f"Pairing for {mask_phone_number(normalized)} ended with {outcome.status_code}: "
            f"{outcome.body.get('error')}"
        )

    return JSONResponse(status_code=outcome.status_code, content=outcome.body)

