"""Configuration module for the Bookworm auth service."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

DEFAULT_USERS_FILE = Path(__file__).parent.parent / "data" / "users.json"


@dataclass
class TokenConfig:
    """Session token configuration."""
    secret_key: str = field(default_factory=lambda: os.getenv("JWT_SECRET_KEY", ""))
    expire_days: int = field(default_factory=lambda: int(os.getenv("TOKEN_EXPIRE_DAYS", "15")))


@dataclass
class OTPConfig:
    """One-time passcode settings."""
    ttl_seconds: int = field(default_factory=lambda: int(os.getenv("OTP_TTL_SECONDS", "300")))
    length: int = field(default_factory=lambda: int(os.getenv("OTP_LENGTH", "6")))

    # How often the background job drops expired codes
    sweep_interval_seconds: int = field(default_factory=lambda: int(os.getenv("OTP_SWEEP_INTERVAL_SECONDS", "60")))


@dataclass
class AccountConfig:
    """User account storage and provisioning."""
    users_file: Path = field(default_factory=lambda: Path(os.getenv("USERS_FILE", str(DEFAULT_USERS_FILE))))
    bcrypt_rounds: int = field(default_factory=lambda: int(os.getenv("BCRYPT_ROUNDS", "12")))
    avatar_base_url: str = field(default_factory=lambda: os.getenv("AVATAR_BASE_URL", "https://api.dicebear.com/9.x/personas/svg"))
    username_retry_attempts: int = field(default_factory=lambda: int(os.getenv("USERNAME_RETRY_ATTEMPTS", "5")))


@dataclass
class Config:
    """Main configuration container."""
    token: TokenConfig = field(default_factory=TokenConfig)
    otp: OTPConfig = field(default_factory=OTPConfig)
    accounts: AccountConfig = field(default_factory=AccountConfig)


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config()
