"""
app/db/indexes.py

Purpose: Database index management

- Unique attempt ids
- Lookups by number and status
- TTL index for automatic cleanup
"""

from app.db.mongo import get_pairing_attempts_collection
from app.core.logging import get_logger

logger = get_logger(__name__)

PAIRING_ATTEMPT_TTL_SECONDS = 2592000  # 30 days


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        attempts = get_pairing_attempts_collection()

        logger.info("Creating database indexes...")

        await attempts.create_index("attempt_id", unique=True, name="attempt_id_unique")
        logger.debug("Created unique index on pairing_attempts.attempt_id")

        # Latest attempts for a number
        await attempts.create_index(
            [("number", 1), ("created_at", -1)],
            name="number_created_idx"
        )
        logger.debug("Created compound index on pairing_attempts.number + created_at")

        await attempts.create_index("status", name="status_idx")
        logger.debug("Created index on pairing_attempts.status")

        await attempts.create_index(
            "created_at",
            expireAfterSeconds=PAIRING_ATTEMPT_TTL_SECONDS,
            name="pairing_attempt_ttl_idx"
        )
        logger.debug("Created TTL index on pairing_attempts.created_at")

        index_info = await attempts.index_information()
        logger.info(f"✅ Database indexes ready: pairing_attempts={len(index_info)}")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
