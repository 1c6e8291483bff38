"""
User storage and management.

Stores users in a JSON file for simplicity.
Can be replaced with a database in the future.
"""

import json
import logging
import threading
import uuid
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, List, Tuple
from dataclasses import dataclass, asdict, field

from .password import PasswordHandler
from ..config import DEFAULT_USERS_FILE
from ..errors import DuplicateUserError

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class User:
    """User data model."""
    user_id: str
    username: str
    password_hash: str
    profile_image: str = ""
    phone_number: Optional[str] = None  # Set for accounts created by OTP login
    email: Optional[str] = None  # Set for accounts created by registration
    expo_push_token: Optional[str] = None
    created_at: str = field(default_factory=_utcnow)
    updated_at: str = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            user_id=data["user_id"],
            username=data["username"],
            password_hash=data["password_hash"],
            profile_image=data.get("profile_image", ""),
            phone_number=data.get("phone_number"),
            email=data.get("email"),
            expo_push_token=data.get("expo_push_token"),
            created_at=data.get("created_at", _utcnow()),
            updated_at=data.get("updated_at", _utcnow())
        )

    def public_profile(self, include_phone: bool = False) -> dict:
        """
        Client-safe view of the user. Never includes the password hash.

        Args:
            include_phone: Return phoneNumber instead of email
        """
        profile = {
            "id": self.user_id,
            "username": self.username,
        }
        if include_phone:
            profile["phoneNumber"] = self.phone_number
        else:
            profile["email"] = self.email
        profile["profileImage"] = self.profile_image
        profile["createdAt"] = self.created_at
        return profile


class UserStore:
    """
    JSON-based user storage.

    Users are indexed by user_id. Username, email and phone number are
    unique; the checks and the write happen under one lock so two threads
    cannot both insert the same value.
    """

    UNIQUE_FIELDS = ("username", "email", "phone_number")

    def __init__(
        self,
        file_path: Optional[Path] = None,
        password_handler: Optional[PasswordHandler] = None
    ):
        """
        Initialize user store.

        Args:
            file_path: Path to users JSON file (default: data/users.json)
            password_handler: Hasher used for passwords (default: bcrypt, 12 rounds)
        """
        self.file_path = file_path or DEFAULT_USERS_FILE
        self.password_handler = password_handler or PasswordHandler()
        self._lock = threading.RLock()
        self._ensure_file()

    def _ensure_file(self):
        """Ensure the storage file and directory exist."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self._save_all({})

    def _load_all(self) -> dict[str, dict]:
        """Load all users from file."""
        with self._lock:
            try:
                with open(self.file_path, "r") as f:
                    return json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                return {}

    def _save_all(self, users: dict[str, dict]):
        """Save all users to file."""
        with open(self.file_path, "w") as f:
            json.dump(users, f, indent=2, ensure_ascii=False)

    def _find(self, users: dict[str, dict], key: str, value: Optional[str]) -> Optional[User]:
        if value is None:
            return None
        for data in users.values():
            if data.get(key) == value:
                return User.from_dict(data)
        return None

    def _check_unique(self, users: dict[str, dict], user: User, exclude_id: Optional[str] = None):
        for key in self.UNIQUE_FIELDS:
            value = getattr(user, key)
            existing = self._find(users, key, value)
            if existing and existing.user_id != exclude_id:
                raise DuplicateUserError(key, value)

    def _insert(self, users: dict[str, dict], user: User):
        self._check_unique(users, user)
        users[user.user_id] = user.to_dict()
        self._save_all(users)

    def create_user(
        self,
        username: str,
        password: Optional[str] = None,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        profile_image: str = ""
    ) -> User:
        """
        Create a new user.

        Args:
            username: Unique username
            password: Plain text password (None stores an unusable hash)
            email: Optional email address, unique when present
            phone_number: Optional normalized phone, unique when present
            profile_image: Avatar URL

        Returns:
            Created User object

        Raises:
            DuplicateUserError: If username, email or phone is taken
        """
        # Hash outside the lock, bcrypt is slow on purpose
        if password:
            password_hash = self.password_handler.hash(password)
        else:
            password_hash = self.password_handler.unusable_hash()

        user = User(
            user_id=str(uuid.uuid4()),
            username=username,
            password_hash=password_hash,
            profile_image=profile_image,
            phone_number=phone_number,
            email=email
        )

        with self._lock:
            self._insert(self._load_all(), user)

        logger.info(f"Created user: {user.username} ({user.user_id})")
        return user

    def get_or_create_by_phone(
        self,
        phone_number: str,
        username: str,
        profile_image: str = ""
    ) -> Tuple[User, bool]:
        """
        Return the user owning a phone number, creating it if absent.

        Lookup and insert run under the store lock, so concurrent calls
        for the same phone produce a single account.

        Args:
            phone_number: Normalized phone number
            username: Username for the new account if one is created
            profile_image: Avatar URL for the new account

        Returns:
            Tuple of (user, created)

        Raises:
            DuplicateUserError: If the account must be created and the
                username is already taken
        """
        existing = self.get_by_phone(phone_number)
        if existing:
            return existing, False

        user = User(
            user_id=str(uuid.uuid4()),
            username=username,
            password_hash=self.password_handler.unusable_hash(),
            profile_image=profile_image,
            phone_number=phone_number
        )

        with self._lock:
            users = self._load_all()
            existing = self._find(users, "phone_number", phone_number)
            if existing:
                return existing, False
            self._insert(users, user)

        logger.info(f"Created user for phone {phone_number}: {user.username}")
        return user, True

    def get_by_id(self, user_id: str) -> Optional[User]:
        """
        Get user by user ID.

        Args:
            user_id: User's unique ID

        Returns:
            User if found, None otherwise
        """
        data = self._load_all().get(user_id)
        return User.from_dict(data) if data else None

    def get_by_phone(self, phone_number: str) -> Optional[User]:
        """Get user by normalized phone number."""
        return self._find(self._load_all(), "phone_number", phone_number)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        return self._find(self._load_all(), "email", email)

    def get_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        return self._find(self._load_all(), "username", username)

    def update_user(self, user: User) -> User:
        """
        Update an existing user.

        Args:
            user: User object with updated fields

        Returns:
            Updated User object

        Raises:
            ValueError: If user doesn't exist
            DuplicateUserError: If the update collides with another user
        """
        with self._lock:
            users = self._load_all()

            if user.user_id not in users:
                raise ValueError(f"User {user.user_id} not found")

            self._check_unique(users, user, exclude_id=user.user_id)
            user.updated_at = _utcnow()
            users[user.user_id] = user.to_dict()
            self._save_all(users)

        logger.debug(f"Updated user: {user.user_id}")
        return user

    def verify_password(self, user: User, password: str) -> bool:
        """
        Check a plain text password against the user's stored hash.

        Args:
            user: User whose hash to check
            password: Password to verify

        Returns:
            True if password matches
        """
        return self.password_handler.verify(password, user.password_hash)

    def list_users(self) -> List[User]:
        """List all users."""
        return [User.from_dict(data) for data in self._load_all().values()]

