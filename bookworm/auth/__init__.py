"""
Authentication module for Bookworm.

Provides JWT session tokens, bcrypt password hashing, the in-memory OTP
store and the JSON user store.
"""

from .jwt_handler import JWTHandler, TokenPayload
from .otp_store import OTPStore, OtpStatus, PendingOtp
from .password import PasswordHandler, MAX_PASSWORD_BYTES, normalize_phone
from .users import UserStore, User

__all__ = [
    "JWTHandler",
    "TokenPayload",
    "OTPStore",
    "OtpStatus",
    "PendingOtp",
    "PasswordHandler",
    "MAX_PASSWORD_BYTES",
    "normalize_phone",
    "UserStore",
    "User",
]
