"""CoursePay - Clerk authentication.

Bearer tokens are verified with Clerk; the ``sub`` claim maps to the local
``User.clerk_id``. Users are provisioned by the accounts service, so an
unknown Clerk user is rejected rather than created here.
"""

import logging
from typing import Annotated

from clerk_backend_api import AuthenticateRequestOptions, authenticate_request
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from coursepay.core.config import get_settings
from coursepay.db import get_db
from coursepay.models.user import User

logger = logging.getLogger(__name__)


class ClerkAuth:
    """Clerk authentication handler.

    Verifies session JWTs issued by Clerk.
    """

    def __init__(self, secret_key: str) -> None:
        self._options = AuthenticateRequestOptions(secret_key=secret_key)

    def verify_token(self, request: Request) -> dict:
        """Verify Clerk JWT token from request.

        Args:
            request: FastAPI request object

        Returns:
            Decoded JWT claims

        Raises:
            HTTPException: If token is invalid or missing
        """
        try:
            request_state = authenticate_request(request, self._options)
        except Exception as e:
            logger.warning(f"Clerk authentication error: {e!s}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication failed",
            ) from e

        if not request_state.is_signed_in:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )

        return request_state.payload or {}


# Singleton instance
_clerk_auth: ClerkAuth | None = None


def get_clerk_auth() -> ClerkAuth:
    """Get Clerk auth singleton."""
    global _clerk_auth
    if _clerk_auth is None:
        _clerk_auth = ClerkAuth(get_settings().clerk_secret_key)
    return _clerk_auth


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    clerk: Annotated[ClerkAuth, Depends(get_clerk_auth)],
) -> User:
    """FastAPI dependency to get current authenticated user.

    Usage:
        @router.get("/history")
        async def history(user: User = Depends(get_current_user)):
            ...
    """
    claims = clerk.verify_token(request)

    clerk_id = claims.get("sub")
    if not clerk_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    result = await db.execute(select(User).where(User.clerk_id == clerk_id))
    user = result.scalar_one_or_none()

    if not user:
        logger.warning(f"Authenticated Clerk user {clerk_id} has no local account")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user
