"""
Password hashing via argon2-cffi.

Hashing is CPU bound, so both calls run in a worker thread to keep the
event loop free.
"""

import asyncio
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordService:
    """Salted one-way password hashing."""

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher()

    async def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2."""
        return await asyncio.to_thread(self._hasher.hash, password)

    async def verify(self, password_hash: str, password: str) -> bool:
        """Verify a plaintext password against a stored hash."""
        if not password_hash:
            return False
        try:
            return await asyncio.to_thread(self._hasher.verify, password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._hasher.check_needs_rehash(password_hash)
