"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- JWT session tokens
- OTP store with a controllable clock
- User store and account services
- API clients backed by mock or real services
"""

import os
import sys
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before imports
os.environ["JWT_SECRET_KEY"] = "test_jwt_secret_key_for_testing_only_32bytes!"
os.environ["BCRYPT_ROUNDS"] = "4"

from bookworm.auth import JWTHandler, OTPStore, PasswordHandler, UserStore, User
from bookworm.config import load_config
from bookworm.services import AccountProvisioner, CredentialVerifier, UserAuthService


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "jwt_secret": "test_jwt_secret_key_for_testing_only_32bytes!",
        "test_phone": "+15551234567",
        "test_email": "reader@example.com",
        "test_username": "reader",
        "test_password": "TestPassword123!",
    }


class FakeClock:
    """Manually advanced time source for expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture
def jwt_handler(test_config) -> JWTHandler:
    """Create a JWTHandler with test secret."""
    return JWTHandler(secret_key=test_config["jwt_secret"])


@pytest.fixture
def valid_session_token(jwt_handler) -> str:
    """Create a valid session token."""
    return jwt_handler.create_session_token(user_id="test-user-id-123")


@pytest.fixture
def expired_token(jwt_handler) -> str:
    """Create an expired session token."""
    return jwt_handler.create_session_token(
        user_id="test-user-id-123",
        expires_in=-1  # Already expired
    )


@pytest.fixture
def password_handler() -> PasswordHandler:
    """Create a PasswordHandler with the cheapest bcrypt cost."""
    return PasswordHandler(rounds=4)


@pytest.fixture
def otp_store(clock) -> OTPStore:
    """Create an OTPStore driven by the fake clock."""
    return OTPStore(clock=clock)


# =============================================================================
# User Store Fixtures
# =============================================================================

@pytest.fixture
def temp_user_file(tmp_path) -> Path:
    """Path for a throwaway users file."""
    return tmp_path / "data" / "users.json"


@pytest.fixture
def user_store(temp_user_file, password_handler) -> UserStore:
    """Create a UserStore with temporary file."""
    return UserStore(file_path=temp_user_file, password_handler=password_handler)


@pytest.fixture
def sample_user(user_store, test_config) -> User:
    """Create a registered email user in the store."""
    return user_store.create_user(
        username=test_config["test_username"],
        password=test_config["test_password"],
        email=test_config["test_email"]
    )


@pytest.fixture
def provisioner(user_store) -> AccountProvisioner:
    return AccountProvisioner(user_store)


@pytest.fixture
def auth_service(jwt_handler, user_store, otp_store, provisioner) -> UserAuthService:
    """UserAuthService wired to temporary stores."""
    return UserAuthService(
        jwt_handler=jwt_handler,
        user_store=user_store,
        otp_store=otp_store,
        provisioner=provisioner,
        verifier=CredentialVerifier(user_store)
    )


# =============================================================================
# Mock Services
# =============================================================================

@pytest.fixture
def mock_services():
    """Create mock services container."""
    services = MagicMock()

    # Mock user auth service
    services.user_auth = MagicMock()
    services.user_auth.request_otp = MagicMock()
    services.user_auth.verify_otp = MagicMock()
    services.user_auth.register = MagicMock()
    services.user_auth.login = MagicMock()
    services.user_auth.update_push_token = MagicMock()

    # Mock JWT handler
    services.jwt = MagicMock()

    # Mock stores
    services.users = MagicMock()
    services.otps = MagicMock()

    return services


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_app():
    """Create FastAPI app for testing."""
    from api.main import app
    return app


@pytest.fixture
def api_client(api_app) -> TestClient:
    """Create synchronous test client for API."""
    return TestClient(api_app)


@pytest.fixture
def live_services(temp_user_file, clock) -> Generator:
    """
    Real services on a temporary users file, installed as the API singleton.

    The OTP store runs on the fake clock so tests can step past expiry.
    """
    from api.deps import build_services

    config = load_config()
    config.accounts.users_file = temp_user_file
    config.accounts.bcrypt_rounds = 4

    services = build_services(config)
    services.otps = OTPStore(clock=clock)
    services.user_auth.otps = services.otps

    with patch("api.deps.get_services", return_value=services):
        yield services


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as API endpoint test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
