"""
Caller Authentication

Management operations (create, stats, delete, sweep) require a bearer token.
The service only needs "token -> identity or reject"; tokens are HS256 JWTs
signed with SECRET_KEY. Redirects are public.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""

    subject: str


class TokenAuthenticator:
    """
    Issue and verify access tokens.

    Args:
        secret_key: HMAC signing key
        expire_minutes: Default lifetime of issued tokens
    """

    def __init__(self, secret_key: str, expire_minutes: int = 60 * 24):
        self.secret_key = secret_key
        self.expire_minutes = expire_minutes

    def create_access_token(self, subject: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Caller identifier stored in the `sub` claim
            expires_delta: Optional custom expiration time

        Returns:
            Encoded JWT token string
        """
        expire = datetime.now(timezone.utc) + (
            expires_delta if expires_delta is not None else timedelta(minutes=self.expire_minutes)
        )
        to_encode: dict[str, Any] = {"sub": subject, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    def authenticate(self, token: Optional[str]) -> Optional[Identity]:
        """
        Verify a bearer token.

        Returns:
            Identity if the token is valid and unexpired, None otherwise
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.info(f"Rejected access token: {e}")
            return None

        subject = payload.get("sub")
        if not subject:
            return None
        return Identity(subject=str(subject))
