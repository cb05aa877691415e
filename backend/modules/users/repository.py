"""
User and follower repositories.

Encapsulates all MongoDB queries and document mapping for:
- users
- followers
"""

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from shared.repository import BaseRepository

from .models import Follower, User


class UserRepository(BaseRepository[User]):
    """
    Repository for user documents.

    Note: This repository does NOT perform authorization checks.
    The service layer is responsible for verifying account state.
    """

    async def create(self, user: User) -> User:
        """Insert a user. Raises pymongo DuplicateKeyError on a taken email."""
        document = user.to_document()
        result = await self._collection.insert_one(document)
        return user.model_copy(update={"id": result.inserted_id})

    async def get_by_id(self, user_id: Any) -> Optional[User]:
        object_id = self.to_object_id(user_id)
        if object_id is None:
            return None
        document = await self._collection.find_one({"_id": object_id})
        return User.model_validate(document) if document else None

    async def get_by_email(self, email: str) -> Optional[User]:
        document = await self._collection.find_one({"email": email})
        return User.model_validate(document) if document else None

    async def get_by_username(self, username: str) -> Optional[User]:
        document = await self._collection.find_one({"username": username})
        return User.model_validate(document) if document else None

    async def email_exists(self, email: str) -> bool:
        document = await self._collection.find_one({"email": email}, projection={"_id": 1})
        return document is not None

    async def username_taken(self, username: str, exclude_user_id: Optional[ObjectId] = None) -> bool:
        query: dict[str, Any] = {"username": username}
        if exclude_user_id is not None:
            query["_id"] = {"$ne": exclude_user_id}
        document = await self._collection.find_one(query, projection={"_id": 1})
        return document is not None

    async def update_fields(self, user_id: Any, fields: dict[str, Any]) -> Optional[User]:
        """Set fields (and updated_at) and return the updated user."""
        object_id = self.to_object_id(user_id)
        if object_id is None:
            return None
        document = await self._collection.find_one_and_update(
            {"_id": object_id},
            {"$set": {**fields, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        return User.model_validate(document) if document else None

    async def increment_counter(self, user_id: ObjectId, field: str, delta: int) -> None:
        await self._collection.update_one({"_id": user_id}, {"$inc": {field: delta}})


class FollowerRepository(BaseRepository[Follower]):
    """Repository for follow edges."""

    async def follow(self, user_id: ObjectId, followed_user_id: ObjectId) -> bool:
        """
        Create the edge if missing.

        Returns:
            True if a new edge was created, False if it already existed.
        """
        result = await self._collection.update_one(
            {"user_id": user_id, "followed_user_id": followed_user_id},
            {"$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
            upsert=True,
        )
        return result.upserted_id is not None

    async def unfollow(self, user_id: ObjectId, followed_user_id: ObjectId) -> bool:
        """Delete the edge. Returns False if there was none."""
        result = await self._collection.delete_one(
            {"user_id": user_id, "followed_user_id": followed_user_id}
        )
        return result.deleted_count > 0

    async def count_edges(self, user_id: ObjectId) -> int:
        return await self._collection.count_documents({"user_id": user_id})
