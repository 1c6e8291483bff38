"""
JWT token handler.

Issues the bearer session tokens handed out after OTP verification,
registration and password login. Tokens are stateless: nothing is stored
server side and there is no revocation.
"""

import os
import time
import logging
from typing import Optional
from dataclasses import dataclass

from jose import jwt, JWTError

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# Token configuration
ALGORITHM = "HS256"
SESSION_TOKEN_EXPIRE_DAYS = 15
SECONDS_PER_DAY = 86400


@dataclass
class TokenPayload:
    """JWT token payload."""
    user_id: str
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp

    def to_dict(self) -> dict:
        return {"userId": self.user_id, "iat": self.iat, "exp": self.exp}

    @classmethod
    def from_dict(cls, data: dict) -> "TokenPayload":
        return cls(user_id=data["userId"], exp=data["exp"], iat=data["iat"])


class JWTHandler:
    """
    Handles session token generation and validation.

    The signing key is process-wide configuration: a handler cannot be
    built without one, so a missing key stops the application at start-up
    instead of failing individual requests.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        expire_days: int = SESSION_TOKEN_EXPIRE_DAYS
    ):
        """
        Initialize JWT handler.

        Args:
            secret_key: Secret key for signing tokens.
                       Falls back to JWT_SECRET_KEY env var.
            expire_days: Session validity window in days (default: 15)

        Raises:
            ConfigurationError: If no signing key is available
        """
        self.secret_key = secret_key or os.getenv("JWT_SECRET_KEY")
        if not self.secret_key:
            raise ConfigurationError(
                "JWT_SECRET_KEY is not set; cannot sign session tokens"
            )
        self.expire_seconds = expire_days * SECONDS_PER_DAY

    def create_session_token(
        self,
        user_id: str,
        expires_in: Optional[int] = None
    ) -> str:
        """
        Create a session token.

        Args:
            user_id: Unique user identifier
            expires_in: Custom expiration in seconds (default: 15 days)

        Returns:
            Encoded JWT token string
        """
        now = int(time.time())
        exp = now + (self.expire_seconds if expires_in is None else expires_in)

        payload = TokenPayload(user_id=user_id, exp=exp, iat=now)

        token = jwt.encode(payload.to_dict(), self.secret_key, algorithm=ALGORITHM)
        logger.debug(f"Created session token for user {user_id}, expires in {exp - now}s")
        return token

    def verify_token(self, token: str) -> Optional[TokenPayload]:
        """
        Verify and decode a token.

        Args:
            token: JWT token string

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            data = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
            payload = TokenPayload.from_dict(data)

            if payload.exp < int(time.time()):
                logger.debug("Token expired")
                return None

            return payload

        except (JWTError, KeyError) as e:
            logger.debug(f"Token verification failed: {e}")
            return None
