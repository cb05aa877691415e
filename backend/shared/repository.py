"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
the MongoDB collection handle and shared helpers for document mapping.
"""

from typing import Any, Generic, Optional, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - MongoDB database access via self._db
    - The repository's collection via self._collection
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle document-to-Pydantic model mapping internally.

    Example:
        class UserRepository(BaseRepository[User]):
            async def get_by_id(self, user_id: ObjectId) -> Optional[User]:
                document = await self._collection.find_one({"_id": user_id})
                return User.model_validate(document) if document else None
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str) -> None:
        """
        Initialize the repository with a database handle.

        Args:
            db: motor database instance for database operations.
            collection_name: Name of the collection this repository owns.
        """
        self._db = db
        self._collection: AsyncIOMotorCollection = db[collection_name]

    @staticmethod
    def to_object_id(value: Any) -> Optional[ObjectId]:
        """Parse a string id into an ObjectId, or None if it is not one."""
        if isinstance(value, ObjectId):
            return value
        if not isinstance(value, str):
            return None
        try:
            return ObjectId(value)
        except InvalidId:
            return None
