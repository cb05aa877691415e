"""
MongoDB client factory.

Provides the shared motor client, index bootstrap and a ping used by the
readiness probe.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from .config import DatabaseSettings

logger = logging.getLogger(__name__)

# Module-level client cache
_client: Optional[AsyncIOMotorClient] = None


def get_mongo_client(settings: DatabaseSettings) -> AsyncIOMotorClient:
    """
    Get the process-wide motor client.

    The client is created on first call and reused afterwards. motor
    connects lazily, so this never blocks on the network.
    """
    global _client

    if _client is None:
        _client = AsyncIOMotorClient(settings.connection_uri, tz_aware=True)
        logger.info("Created MongoDB client for database %s", settings.mongodb_name)
    return _client


def get_database(settings: DatabaseSettings) -> AsyncIOMotorDatabase:
    """Get the application database handle."""
    return get_mongo_client(settings)[settings.mongodb_name]


async def ensure_indexes(db: AsyncIOMotorDatabase, settings: DatabaseSettings) -> None:
    """
    Create the indexes the auth flow relies on.

    - users.email: unique
    - users.username: unique, sparse (optional field)
    - refresh_tokens.token: unique
    - refresh_tokens.user_id: lookup for revoke-all
    - followers (user_id, followed_user_id): unique edge
    """
    users = db[settings.mongodb_users_collection]
    await users.create_index([("email", ASCENDING)], unique=True)
    await users.create_index([("username", ASCENDING)], unique=True, sparse=True)

    tokens = db[settings.mongodb_refresh_tokens_collection]
    await tokens.create_index([("token", ASCENDING)], unique=True)
    await tokens.create_index([("user_id", ASCENDING)])

    followers = db[settings.mongodb_followers_collection]
    await followers.create_index(
        [("user_id", ASCENDING), ("followed_user_id", ASCENDING)],
        unique=True,
    )
    logger.info("MongoDB indexes ensured")


async def ping(db: AsyncIOMotorDatabase) -> bool:
    """Return True if the database answers a ping."""
    try:
        await db.command("ping")
        return True
    except PyMongoError:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False


def close_client() -> None:
    """Close the cached client, if any."""
    global _client

    if _client is not None:
        _client.close()
        _client = None
        logger.info("Closed MongoDB client")


def reset_client_cache() -> None:
    """
    Reset the cached database client without closing it.

    Useful for testing or when configuration changes.
    """
    global _client
    _client = None
