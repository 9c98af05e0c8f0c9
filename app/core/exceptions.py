from typing import Optional, Any

class PairServerError(Exception):
    """
    Base exception for the pairing service.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class MissingNumberError(PairServerError):
    """
    Raised when the 'number' query parameter is absent or empty.
    """
    def __init__(self, message: str = "Missing 'number' query parameter", details: Optional[Any] = None):
        super().__init__(message, code="MISSING_NUMBER", status_code=400, details=details)

class InvalidNumberError(PairServerError):
    """
    Raised when the phone number has no digits left after normalisation.
    """
    def __init__(self, message: str = "Invalid phone number", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_NUMBER", status_code=400, details=details)

class PairingInProgressError(PairServerError):
    """
    Raised when a pairing session is already running for the number.
    """
    def __init__(self, message: str = "Pairing already in progress for this number", details: Optional[Any] = None):
        super().__init__(message, code="PAIRING_IN_PROGRESS", status_code=409, details=details)

class UploadError(PairServerError):
    """
    Raised when the credential upload fails.
    """
    def __init__(self, message: str = "Failed to upload credentials", details: Optional[Any] = None):
        super().__init__(message, code="UPLOAD_FAILED", status_code=500, details=details)
