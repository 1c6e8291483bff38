"""
API dependencies.

Provides dependency injection for services and bearer authentication.
"""

import logging
from typing import Optional, Annotated
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bookworm.config import load_config, Config
from bookworm.services import UserAuthService, create_auth_service
from bookworm.auth import JWTHandler, OTPStore, TokenPayload, UserStore

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Container for all services."""
    config: Config
    user_auth: UserAuthService
    jwt: JWTHandler
    users: UserStore
    otps: OTPStore


# Global services instance (singleton)
_services: Optional[Services] = None


def build_services(config: Optional[Config] = None, user_store: Optional[UserStore] = None) -> Services:
    """Wire the service graph from configuration."""
    cfg = config or load_config()
    user_auth = create_auth_service(cfg, user_store=user_store)

    return Services(
        config=cfg,
        user_auth=user_auth,
        jwt=user_auth.jwt,
        users=user_auth.users,
        otps=user_auth.otps
    )


def get_services() -> Services:
    """
    Get or create the services singleton.

    This initializes all services on first call.
    """
    global _services

    if _services is None:
        logger.info("Initializing services...")
        _services = build_services()
        logger.info("Services initialized successfully")

    return _services


def close_services():
    """Drop the services singleton and any pending OTPs it holds."""
    global _services
    if _services:
        _services.otps.clear()
        _services = None
        logger.info("Services closed")


# Dependency for getting services
def services_dep() -> Services:
    """FastAPI dependency for services."""
    return get_services()


ServicesDep = Annotated[Services, Depends(services_dep)]


# Authentication dependencies

async def get_token_payload(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    services: ServicesDep
) -> TokenPayload:
    """
    Decode the bearer session token.

    The resolved user id is handed to the route; loading the user is left
    to the service. Raises 401 if no valid token is provided.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token, access denied",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = services.jwt.verify_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return payload


# Type aliases for dependencies
CurrentTokenPayload = Annotated[TokenPayload, Depends(get_token_payload)]
