"""
Refresh token repository.

A refresh token verifies only while its record exists, so deleting the
record is how logout and rotation revoke it.
"""

import logging

from shared.repository import BaseRepository

from .models import RefreshTokenDocument

logger = logging.getLogger(__name__)


class RefreshTokenRepository(BaseRepository[RefreshTokenDocument]):
    """
    Repository for refresh token records.

    Note: This repository does NOT verify token signatures.
    The token service is responsible for that.
    """

    async def create(self, user_id: str, token: str) -> RefreshTokenDocument:
        """Persist a refresh token for a user."""
        document = RefreshTokenDocument(user_id=self.to_object_id(user_id), token=token)
        result = await self._collection.insert_one(
            document.model_dump(by_alias=True, exclude_none=True)
        )
        return document.model_copy(update={"id": result.inserted_id})

    async def exists(self, user_id: str, token: str) -> bool:
        """Whether a record matches both the user and the exact token string."""
        object_id = self.to_object_id(user_id)
        if object_id is None:
            return False
        document = await self._collection.find_one(
            {"user_id": object_id, "token": token},
            projection={"_id": 1},
        )
        return document is not None

    async def delete(self, user_id: str, token: str) -> bool:
        """Delete one record. Returns False if nothing matched."""
        object_id = self.to_object_id(user_id)
        if object_id is None:
            return False
        result = await self._collection.delete_one({"user_id": object_id, "token": token})
        return result.deleted_count > 0

    async def delete_all_for_user(self, user_id: str) -> int:
        """Delete every record of a user and return how many were removed."""
        object_id = self.to_object_id(user_id)
        if object_id is None:
            return 0
        result = await self._collection.delete_many({"user_id": object_id})
        logger.info("Deleted %d refresh token(s) for user %s", result.deleted_count, user_id)
        return result.deleted_count
