"""
Authentication module interface.

Other modules should depend on ITokenService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import IssueOptions, TokenPair, TokenPayload, TokenType, UserVerifyStatus


@runtime_checkable
class ITokenService(Protocol):
    """
    Interface for token issuance and verification.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    async def issue(
        self,
        kind: TokenType,
        user_id: str,
        verify_status: Optional[UserVerifyStatus] = None,
        options: Optional[IssueOptions] = None,
    ) -> str:
        """
        Sign a token of the given kind.

        Refresh tokens are not persisted here; use issue_pair() or persist
        the result yourself.
        """
        ...

    async def verify(self, kind: TokenType, token: Optional[str]) -> TokenPayload:
        """
        Verify signature, expiry and kind of a token.

        Refresh tokens must also have a persisted record.

        Raises:
            TokenError: Expired, not yet valid, malformed, revoked or missing
        """
        ...

    async def revoke(self, user_id: str, token: str) -> bool:
        """Delete a refresh token record. Returns False if none existed."""
        ...

    async def revoke_all(self, user_id: str) -> int:
        """Delete every refresh token record of a user."""
        ...

    async def rotate(self, user_id: str, old_token: str) -> str:
        """Replace a refresh token with a new one bound to the same user."""
        ...

    async def issue_pair(
        self,
        user_id: str,
        verify_status: UserVerifyStatus,
    ) -> TokenPair:
        """Issue an access and refresh token and persist the refresh token."""
        ...
