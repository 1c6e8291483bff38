"""
Password handling utilities.

Uses bcrypt for secure password hashing.
"""

import logging
import secrets
from typing import Optional

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt work factor (higher = more secure but slower)
BCRYPT_ROUNDS = 12

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class PasswordHandler:
    """
    Handles password hashing and verification using bcrypt.

    Usage:
        handler = PasswordHandler()
        hashed = handler.hash("my_password")
        is_valid = handler.verify("my_password", hashed)
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """
        Initialize password handler.

        Args:
            rounds: bcrypt work factor (default: 12)
        """
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string (includes salt)

        Raises:
            ValueError: If the password is empty or longer than
                MAX_PASSWORD_BYTES once encoded
        """
        if not password:
            raise ValueError("Password cannot be empty")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")

        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)

        return hashed.decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """
        Verify a password against a hash.

        Args:
            password: Plain text password to verify
            hashed: Previously hashed password

        Returns:
            True if password matches, False otherwise
        """
        if not password or not hashed:
            return False

        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                hashed.encode("utf-8")
            )
        except ValueError as e:
            logger.warning(f"Password verification error: {e}")
            return False

    def unusable_hash(self) -> str:
        """
        Hash a random secret nobody knows.

        Accounts provisioned through OTP get one of these so the password
        column is never empty, yet no password login can succeed.
        """
        return self.hash(secrets.token_urlsafe(32))


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to a lookup key.

    Removes spaces, dashes, dots and parentheses. A leading + is kept.

    Args:
        phone: Phone number in any format

    Returns:
        Normalized phone number or None if nothing usable remains

    Examples:
        normalize_phone("+1 (555) 123-4567") -> "+15551234567"
        normalize_phone("555.123.4567") -> "5551234567"
    """
    if not phone:
        return None

    cleaned = "".join(c for c in phone.strip() if c not in " -.()")

    digits = cleaned[1:] if cleaned.startswith("+") else cleaned
    if not digits or not digits.isdigit():
        return None

    return cleaned
