"""
Database initialization script

Run once to create indexes and the bootstrap admin:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables before settings are read
load_dotenv()

import logging

from app.core.config import settings
from app.db import mongo
from app.db.indexes import create_indexes
from app.services.auth_service import ensure_default_admin

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

COLLECTIONS = (
    "users",
    "connections",
    "notifications",
    "user_preferences",
    "conversations",
    "messages",
    "user_keys",
)


async def main():
    logger.info("=" * 60)
    logger.info("  Blaze Database Setup")
    logger.info("=" * 60 + "\n")

    logger.info(f"🔌 Connecting to MongoDB: {settings.MONGODB_DB_NAME}")
    await mongo.connect_to_mongo()

    try:
        await create_indexes()

        if settings.DEFAULT_ADMIN_PASSWORD:
            await ensure_default_admin()
        else:
            logger.info("ℹ️  DEFAULT_ADMIN_PASSWORD not set, skipping admin bootstrap")

        db = mongo.get_database()
        logger.info("\n🔍 Verifying indexes...")
        for name in COLLECTIONS:
            indexes = await db[name].index_information()
            logger.info(f"\n  {name}:")
            for idx_name in indexes.keys():
                if idx_name != "_id_":
                    logger.info(f"    ✅ {idx_name}")

        logger.info("\n📊 Current documents:")
        for name in COLLECTIONS:
            logger.info(f"  {name}: {await db[name].count_documents({})}")

        logger.info("\n✅ Database initialization complete!")

    finally:
        await mongo.close_mongo_connection()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
