"""
Account provisioning.

Resolves a phone number or an email registration to a user record,
creating the account with derived defaults when it doesn't exist yet.
"""

import logging
import secrets
import time
from typing import Optional
from urllib.parse import quote

from ..auth import UserStore, User, MAX_PASSWORD_BYTES
from ..errors import ConflictError, DuplicateUserError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_BASE_URL = "https://api.dicebear.com/9.x/personas/svg"
USERNAME_RETRY_ATTEMPTS = 5

MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3

CONFLICT_MESSAGES = {
    "email": "Email already exists",
    "username": "Username already exists",
}


class AccountProvisioner:
    """
    Creates and resolves user accounts.

    Handles:
    - Find-or-create by phone (OTP login)
    - Email/username/password registration
    """

    def __init__(
        self,
        user_store: UserStore,
        avatar_base_url: str = DEFAULT_AVATAR_BASE_URL,
        retry_attempts: int = USERNAME_RETRY_ATTEMPTS
    ):
        self.users = user_store
        self.avatar_base_url = avatar_base_url
        self.retry_attempts = retry_attempts

    def avatar_url(self, username: str) -> str:
        """Deterministic avatar seeded by username."""
        return f"{self.avatar_base_url}?seed={quote(username)}"

    @staticmethod
    def generate_username(attempt: int = 0) -> str:
        """
        Synthesize a username of the form user_<6 digits>.

        The first attempt uses the tail of the millisecond clock, later
        attempts pick random digits so a retry within the same
        millisecond doesn't repeat the collision.
        """
        if attempt == 0:
            suffix = str(time.time_ns() // 1_000_000)[-6:]
        else:
            suffix = str(secrets.randbelow(10 ** 6)).zfill(6)
        return f"user_{suffix}"

    def ensure_user_by_phone(self, phone: str) -> User:
        """
        Return the account for a phone number, creating it on first use.

        Repeated calls for a phone that already has an account return the
        same record and write nothing.

        Args:
            phone: Normalized phone number

        Returns:
            Existing or newly created User

        Raises:
            ConflictError: If no free username was found after all retries
        """
        for attempt in range(self.retry_attempts):
            username = self.generate_username(attempt)
            try:
                user, created = self.users.get_or_create_by_phone(
                    phone_number=phone,
                    username=username,
                    profile_image=self.avatar_url(username)
                )
            except DuplicateUserError as e:
                if e.field != "username":
                    raise
                logger.warning(f"Generated username {username} already taken, retrying")
                continue

            if created:
                logger.info(f"Provisioned account {user.username} for phone {phone}")
            return user

        raise ConflictError("Could not allocate a username, please try again")

    def register_user(
        self,
        email: Optional[str],
        username: Optional[str],
        password: Optional[str]
    ) -> User:
        """
        Register a new email/password account.

        All checks run before anything is written. Email uniqueness is
        checked before username uniqueness.

        Args:
            email: Email address
            username: Desired username
            password: Plain text password

        Returns:
            Created User

        Raises:
            ValidationError: Missing or blank fields, bad password length,
                short username
            ConflictError: Email or username already taken
        """
        email = normalize_email(email)
        if not email or not username or not username.strip() or not password:
            raise ValidationError("All fields are required")

        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password should be at most {MAX_PASSWORD_BYTES} bytes long"
            )

        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                f"Username should be at least {MIN_USERNAME_LENGTH} characters long"
            )

        if self.users.get_by_email(email):
            raise ConflictError(CONFLICT_MESSAGES["email"])

        if self.users.get_by_username(username):
            raise ConflictError(CONFLICT_MESSAGES["username"])

        try:
            user = self.users.create_user(
                username=username,
                password=password,
                email=email,
                profile_image=self.avatar_url(username)
            )
        except DuplicateUserError as e:
            # Lost a race with a concurrent registration
            raise ConflictError(CONFLICT_MESSAGES.get(e.field, str(e))) from e

        logger.info(f"Registered user {user.username} <{email}>")
        return user


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and strip an email address. None becomes an empty string."""
    return (email or "").strip().lower()
