"""
utils/constants.py

Purpose: Centralized static content

- Messages sent to the freshly linked WhatsApp account
- Error messages returned to the HTTP caller
- Upload naming constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# CONFIRMATION MESSAGES (sent over WhatsApp)
# ============================================================

SESSION_CAPTION_TEMPLATE = """*{bot_name}*

👉 {session_id} 👈

*This is your Session ID. Copy this ID and paste into config.js file.*

*You can ask any question using this link:*

*{support_link}*"""

PRIVACY_WARNING_MESSAGE = "🛑 Do not share this code with anyone. Keep it private. 🛑"

# ============================================================
# HTTP ERROR MESSAGES
# ============================================================

ERROR_MAX_RETRIES = "Max retries reached"
ERROR_RETRIES_EXHAUSTED = "Unable to connect after retries"
ERROR_SERVICE_UNAVAILABLE = "Service Unavailable"
ERROR_PAIRING_TIMEOUT = "Timed out waiting for pairing code"
ERROR_AUTH_FAILURE = "Authentication failure"
ERROR_PAIRING_CODE = "Failed to request pairing code"
ERROR_CREDS_NOT_FOUND = "Credentials file not found"
ERROR_USER_ID = "User id not available"
ERROR_UPLOAD = "Failed to upload credentials"
ERROR_INTERNAL = "Internal server error"

# ============================================================
# UPLOAD NAMING
# ============================================================

UPLOAD_ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
UPLOAD_ID_LETTERS = 6
UPLOAD_ID_DIGITS = 4

# Disconnect status that must never be retried
STATUS_LOGGED_OUT = 401
