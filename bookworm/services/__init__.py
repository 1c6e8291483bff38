"""
Services layer for Bookworm.

Business logic for account provisioning and authentication, shared by
the API and the operator scripts.
"""

from typing import Optional

from ..auth import JWTHandler, OTPStore, PasswordHandler, UserStore
from ..config import Config, load_config
from .account_provisioner import AccountProvisioner
from .credential_verifier import CredentialVerifier
from .user_auth_service import UserAuthService, AuthResult

__all__ = [
    # Services
    "AccountProvisioner",
    "CredentialVerifier",
    "UserAuthService",
    # Data classes
    "AuthResult",
    # Factories
    "create_user_store",
    "create_auth_service",
]


def create_user_store(config: Optional[Config] = None) -> UserStore:
    """Build the JSON user store described by the config."""
    cfg = config or load_config()
    return UserStore(
        file_path=cfg.accounts.users_file,
        password_handler=PasswordHandler(rounds=cfg.accounts.bcrypt_rounds)
    )


def create_auth_service(
    config: Optional[Config] = None,
    user_store: Optional[UserStore] = None
) -> UserAuthService:
    """
    Factory function to create the auth service with proper dependencies.

    Args:
        config: Optional config (loads from env if not provided)
        user_store: Optional user store (built from config if not provided)

    Returns:
        Configured UserAuthService

    Raises:
        ConfigurationError: If JWT_SECRET_KEY is missing
    """
    cfg = config or load_config()
    users = user_store or create_user_store(cfg)

    jwt = JWTHandler(secret_key=cfg.token.secret_key, expire_days=cfg.token.expire_days)
    otps = OTPStore(ttl_seconds=cfg.otp.ttl_seconds, length=cfg.otp.length)
    provisioner = AccountProvisioner(
        users,
        avatar_base_url=cfg.accounts.avatar_base_url,
        retry_attempts=cfg.accounts.username_retry_attempts
    )

    return UserAuthService(
        jwt_handler=jwt,
        user_store=users,
        otp_store=otps,
        provisioner=provisioner,
        verifier=CredentialVerifier(users)
    )
