"""
MongoDB Index Creation Script

Run this to create the indexes used by the sync and the composition reads.
Should be run once after deployment and whenever index strategy changes.

Usage:
    python scripts/create_indexes.py [--prod]
"""

import sys
from pathlib import Path

# Add parent directory to Python path to allow importing from root
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import asyncio
import os

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import OperationFailure

from logging_config import logger

parser = argparse.ArgumentParser(description='Create MongoDB indexes.')
parser.add_argument('--prod',
                    action='store_true',
                    help='Create indexes in production database.')
args = parser.parse_args()

if args.prod:
    DB_URL = os.environ['DB_URL_PROD']
    DB_NAME = 'sqyping'
else:
    DB_URL = os.environ['DB_URL']
    DB_NAME = 'sqyping_dev'


async def create_indexes():
    """Create the indexes of the sync and composition collections"""

    client = AsyncIOMotorClient(DB_URL)
    db = client[DB_NAME]

    logger.info(f"Starting index creation for database: {DB_NAME}...")

    async def create_index_safe(collection, keys, **kwargs):
        """Helper to create index and skip if already exists"""
        index_name = kwargs.get('name', 'unnamed')
        try:
            await collection.create_index(keys, **kwargs)
            logger.info(f"  ✓ Created index: {index_name}")
        except OperationFailure as e:
            if "already exists" in str(e) or "IndexOptionsConflict" in str(e):
                logger.info(f"  ↷ Index already exists: {index_name}")
            else:
                logger.error(f"  ✗ Failed to create index {index_name}: {str(e)}")
                raise

    try:
        logger.info("Creating matches collection indexes...")
        await create_index_safe(db.matches,
            [("teamId", 1), ("phase", 1), ("journee", 1)],
            name="team_phase_journee_idx")
        await create_index_safe(db.matches,
            [("idEpreuve", 1), ("date", 1)],
            name="epreuve_date_idx")

        logger.info("Creating players collection indexes...")
        await create_index_safe(db.players,
            [("licence", 1)],
            unique=True,
            name="licence_unique_idx")
        await create_index_safe(db.players,
            [("isActive", 1), ("gender", 1)],
            name="active_gender_idx")

        logger.info("Creating compositions collection indexes...")
        for collection in (db.compositions, db.availabilities):
            await create_index_safe(collection,
                [("epreuve", 1), ("phase", 1), ("journee", 1), ("championshipType", 1)],
                name="scope_idx")

        logger.info("Index creation completed successfully")

        for collection_name in ["matches", "players", "compositions", "availabilities"]:
            indexes = await db[collection_name].index_information()
            logger.info(f"{collection_name} indexes:")
            for idx_name, idx_info in indexes.items():
                logger.info(f"  - {idx_name}: {idx_info.get('key', [])}")

    except Exception as e:
        logger.error(f"Error creating indexes: {str(e)}")
        raise
    finally:
        client.close()

if __name__ == "__main__":
    asyncio.run(create_indexes())
