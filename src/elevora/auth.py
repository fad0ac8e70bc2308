"""
Caller identity from Clerk session tokens
"""
import logging
from typing import List, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from .config import config
from .exceptions import AuthenticationMissing

logger = logging.getLogger(__name__)

# auto_error=False so unauthenticated callers reach the entitlement checks,
# which deny them explicitly
http_bearer = HTTPBearer(auto_error=False)


class ClerkSessionVerifier:
    """Verifies Clerk session JWTs and extracts the user id (sub claim)"""

    def __init__(self, key: str, algorithms: Optional[List[str]] = None):
        self.key = key
        self.algorithms = algorithms or ["RS256"]

    def verify(self, token: str) -> str:
        """
        Raises:
            AuthenticationMissing: invalid or expired token, or no sub claim
        """
        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"Session token rejected: {type(e).__name__}")
            raise AuthenticationMissing("Invalid session token")

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationMissing("Session token has no subject")
        return user_id


def get_session_verifier() -> ClerkSessionVerifier:
    return ClerkSessionVerifier(
        config.require("CLERK_JWT_PUBLIC_KEY"),
        algorithms=[config.CLERK_JWT_ALGORITHM],
    )


def get_current_clerk_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[str]:
    """
    Clerk user id of the caller, or None when no token was sent.
    Use as FastAPI dependency where anonymous callers get a deny result
    rather than a 401.
    """
    if credentials is None or not credentials.credentials:
        return None
    return get_session_verifier().verify(credentials.credentials)


def require_clerk_user_id(
    clerk_user_id: Optional[str] = Depends(get_current_clerk_user_id),
) -> str:
    """Like get_current_clerk_user_id but answers 401 for anonymous callers"""
    if not clerk_user_id:
        raise AuthenticationMissing("Unauthorized")
    return clerk_user_id
