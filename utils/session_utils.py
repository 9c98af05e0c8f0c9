"""
utils/session_utils.py

Purpose: Session file helpers

- Random upload names for credential files
- Session id derivation from uploaded URLs
- Local session directory cleanup
"""

import random
import shutil
from pathlib import Path
from typing import Optional

from app.core.logging import get_logger
from utils.constants import UPLOAD_ID_ALPHABET, UPLOAD_ID_LETTERS, UPLOAD_ID_DIGITS

logger = get_logger(__name__)


def generate_upload_name(
    extension: str = "json",
    length: int = UPLOAD_ID_LETTERS,
    number_length: int = UPLOAD_ID_DIGITS
) -> str:
    """
    Builds a random file name for an uploaded credential file.

    Format: 6 alphanumerics followed by a number below 10**4,
    e.g. "aB3xYz731.json". The number is not zero padded.

    Args:
        extension: File extension without the dot
        length: Number of random alphanumeric characters
        number_length: Number of decimal digits in the upper bound

    Returns:
        File name
    """
    letters = "".join(random.choice(UPLOAD_ID_ALPHABET) for _ in range(length))
    number = random.randrange(10 ** number_length)
    name = f"{letters}{number}"

    if extension:
        name = f"{name}.{extension.lstrip('.')}"

    return name


def extract_session_id(url: str, prefix: Optional[str]) -> str:
    """
    Derives the session id shared with the user from an uploaded file URL.

    Args:
        url: URL returned by the storage client
        prefix: Public base URL to strip (with or without trailing slash)

    Returns:
        URL without the prefix; the URL itself if it does not start with it
    """
    if not prefix:
        return url

    prefix = prefix.rstrip("/") + "/"
    if url.startswith(prefix):
        return url[len(prefix):]

    return url


def remove_path(target: Path) -> bool:
    """
    Removes a session file or directory tree.

    Returns:
        True if something was removed, False if it did not exist or removal failed
    """
    target = Path(target)

    try:
        if not target.exists():
            return False

        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        return True

    except OSError as e:
        logger.error(f"Failed to remove {target}: {e}")
        return False
