"""
backend/potsplit/database.py

Purpose:
    MongoDB connection bootstrap and index management for the tournament,
    wager and pick collections the settlement engine reads.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - potsplit.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure

from potsplit.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("potsplit.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Members ----
    try:
        await db.tournament_members.create_index(
            [("tournament_id", 1), ("user_id", 1)], unique=True,
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning("Skipped unique member index due to duplicate data: %s", exc)
        await db.tournament_members.create_index(
            [("tournament_id", 1), ("user_id", 1)],
            name="tournament_member_lookup",
        )

    # ---- Wagers (settlement reads settled wagers per tournament) ----
    await db.wagers.create_index([("tournament_id", 1), ("status", 1)])
    await db.wagers.create_index([("tournament_id", 1), ("event_id", 1)])

    # ---- Picks (one pick per participant per wager) ----
    try:
        await db.picks.create_index(
            [("wager_id", 1), ("user_id", 1)], unique=True,
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning("Skipped unique pick index due to duplicate data: %s", exc)
        await db.picks.create_index(
            [("wager_id", 1), ("user_id", 1)],
            name="pick_lookup",
        )
    await db.picks.create_index([("tournament_id", 1), ("wager_id", 1)])

    logger.info("Indexes ensured")
