"""Email/password credential check."""

import logging

from ..auth import UserStore, User
from ..errors import AuthenticationError
from .account_provisioner import normalize_email

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Validates password logins against the stored bcrypt hash."""

    def __init__(self, user_store: UserStore):
        self.users = user_store

    def login(self, email: str, password: str) -> User:
        """
        Look up an account by email and check its password.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        email = normalize_email(email)
        user = self.users.get_by_email(email) if email else None
        if not user:
            raise AuthenticationError("User not found")

        if not self.users.verify_password(user, password):
            logger.info(f"Invalid password for {user.username}")
            raise AuthenticationError("Invalid credentials")

        return user
