"""
app/services/process_service.py

Purpose: Process restart hook

- Runs the configured restart command (process manager) after fatal pairing errors
- Never raises; failures are only logged
"""

import asyncio
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


async def safe_restart(command: Optional[str] = None) -> bool:
    """
    Runs the restart command, if one is configured.

    Args:
        command: Command to run; defaults to settings.RESTART_COMMAND

    Returns:
        True if the command ran and exited with status 0
    """
    command = command or settings.RESTART_COMMAND
    if not command:
        logger.debug("No restart command configured, skipping restart")
        return False

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            logger.error(
                f"Restart command failed ({process.returncode}): {stderr.decode(errors='replace').strip()}"
            )
            return False

        logger.info(f"Restart command ran: {(stdout or stderr).decode(errors='replace').strip()}")
        return True

    except Exception as e:
        logger.error(f"Restart command could not be started: {e}", exc_info=True)
        return False
