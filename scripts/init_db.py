"""
Database initialization script - pairing audit trail

Run once to create the collection and its indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
import os
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
import logging

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


MONGODB_URL = os.getenv("MONGODB_URL")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "pairserver")

if not MONGODB_URL:
    raise ValueError("❌ MONGODB_URL must be set in .env file")


async def create_indexes():
    """Create indexes for the pairing_attempts collection"""

    logger.info(f"🔌 Connecting to MongoDB: {MONGODB_DB_NAME}")
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[MONGODB_DB_NAME]

    try:
        await client.admin.command('ping')
        logger.info("✅ Connected successfully\n")

        logger.info("📋 Creating 'pairing_attempts' collection...")
        attempts = db.pairing_attempts

        await attempts.create_index(
            [("attempt_id", ASCENDING)],
            unique=True,
            name="attempt_id_unique"
        )
        logger.info("  ✅ Attempt id index created (unique)")

        await attempts.create_index(
            [("number", ASCENDING), ("created_at", DESCENDING)],
            name="number_created_idx"
        )
        logger.info("  ✅ Number history index created")

        await attempts.create_index(
            [("status", ASCENDING)],
            name="status_idx"
        )
        logger.info("  ✅ Status index created")

        await attempts.create_index(
            [("created_at", ASCENDING)],
            name="pairing_attempt_ttl_idx",
            expireAfterSeconds=2592000  # 30 days
        )
        logger.info("  ✅ TTL index created (30 day auto-cleanup)")

        indexes = await attempts.index_information()
        logger.info("\n🔍 Indexes:")
        for idx_name in indexes.keys():
            if idx_name != "_id_":
                logger.info(f"    ✅ {idx_name}")

        total = await attempts.count_documents({})
        completed = await attempts.count_documents({"status": "completed"})
        logger.info(f"\n📊 Pairing attempts: {total} ({completed} completed)")

        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(create_indexes())
