"""
User authentication service.

Composes the OTP store, account provisioner, credential verifier and JWT
handler into the login protocols exposed by the API:
- phone OTP request / verification
- email registration
- email/password login
- push token update for an authenticated user
"""

import logging
from typing import Optional
from dataclasses import dataclass

from ..auth import JWTHandler, OTPStore, OtpStatus, UserStore, User, normalize_phone
from ..errors import AuthError, AuthenticationError, InternalError, ValidationError
from .account_provisioner import AccountProvisioner, normalize_email
from .credential_verifier import CredentialVerifier

logger = logging.getLogger(__name__)

OTP_ERRORS = {
    OtpStatus.INVALID: "Invalid OTP",
    OtpStatus.EXPIRED: "OTP has expired",
}


@dataclass
class AuthResult:
    """Outcome of one protocol run."""
    success: bool
    token: Optional[str] = None
    user: Optional[User] = None
    message: Optional[str] = None
    is_new_user: Optional[bool] = None
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def failure(cls, error: AuthError) -> "AuthResult":
        return cls(success=False, error=error.message, status_code=error.status_code)


class UserAuthService:
    """
    Service for user authentication.

    Every public method is a short pipeline that stops at the first
    failure. Client errors come back as a failed AuthResult with their
    status code; anything unexpected is logged and reported as a generic
    internal error.
    """

    def __init__(
        self,
        jwt_handler: JWTHandler,
        user_store: UserStore,
        otp_store: Optional[OTPStore] = None,
        provisioner: Optional[AccountProvisioner] = None,
        verifier: Optional[CredentialVerifier] = None
    ):
        """
        Initialize auth service.

        Args:
            jwt_handler: Issues session tokens
            user_store: User repository
            otp_store: Optional OTP store (creates default if not provided)
            provisioner: Optional provisioner (creates default if not provided)
            verifier: Optional credential verifier (creates default if not provided)
        """
        self.jwt = jwt_handler
        self.users = user_store
        self.otps = otp_store or OTPStore()
        self.provisioner = provisioner or AccountProvisioner(user_store)
        self.verifier = verifier or CredentialVerifier(user_store)

    def _run(self, operation: str, step, *args) -> AuthResult:
        try:
            return step(*args)
        except AuthError as e:
            logger.info(f"{operation} rejected: {e.message}")
            return AuthResult.failure(e)
        except Exception as e:
            logger.error(f"{operation} failed: {e}", exc_info=True)
            return AuthResult.failure(InternalError())

    def _require_phone(self, phone: Optional[str], message: str) -> str:
        if not phone:
            raise ValidationError(message)
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValidationError("Invalid phone number format")
        return normalized

    def request_otp(self, phone: Optional[str]) -> AuthResult:
        """
        Issue a one-time passcode for a phone number.

        Does not create an account. is_new_user tells the client whether
        an account exists for the phone right now.
        """
        return self._run("OTP request", self._request_otp, phone)

    def _request_otp(self, phone: Optional[str]) -> AuthResult:
        normalized = self._require_phone(phone, "Phone number is required")

        code = self.otps.request(normalized)

        # No SMS transport: the log line is the delivery channel
        logger.info(f"OTP for {normalized}: {code}")

        user = self.users.get_by_phone(normalized)

        return AuthResult(
            success=True,
            message="OTP sent successfully",
            is_new_user=user is None
        )

    def verify_otp(self, phone: Optional[str], otp: Optional[str]) -> AuthResult:
        """
        Verify a passcode and sign the user in, provisioning the account
        on first login.
        """
        return self._run("OTP verification", self._verify_otp, phone, otp)

    def _verify_otp(self, phone: Optional[str], otp: Optional[str]) -> AuthResult:
        if not phone or not otp:
            raise ValidationError("Phone number and OTP are required")
        normalized = self._require_phone(phone, "Phone number and OTP are required")

        status = self.otps.verify(normalized, otp)
        if status is not OtpStatus.VALID:
            logger.warning(f"OTP verification for {normalized}: {status.value}")
            raise AuthenticationError(OTP_ERRORS[status])

        user = self.provisioner.ensure_user_by_phone(normalized)
        token = self.jwt.create_session_token(user.user_id)

        logger.info(f"OTP login: {user.username}")
        return AuthResult(success=True, token=token, user=user)

    def register(
        self,
        email: Optional[str],
        username: Optional[str],
        password: Optional[str]
    ) -> AuthResult:
        """Register an email/password account and sign it in."""
        return self._run("Registration", self._register, email, username, password)

    def _register(
        self,
        email: Optional[str],
        username: Optional[str],
        password: Optional[str]
    ) -> AuthResult:
        user = self.provisioner.register_user(email, username, password)
        token = self.jwt.create_session_token(user.user_id)
        return AuthResult(success=True, token=token, user=user, status_code=201)

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """Sign in with email and password."""
        return self._run("Login", self._login, email, password)

    def _login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        if not normalize_email(email) or not password:
            raise ValidationError("All fields are required")

        user = self.verifier.login(email, password)
        token = self.jwt.create_session_token(user.user_id)

        logger.info(f"User logged in: {user.username}")
        return AuthResult(success=True, token=token, user=user)

    def update_push_token(self, user_id: str, expo_push_token: Optional[str]) -> AuthResult:
        """Store the Expo push token for an authenticated user."""
        return self._run("Push token update", self._update_push_token, user_id, expo_push_token)

    def _update_push_token(self, user_id: str, expo_push_token: Optional[str]) -> AuthResult:
        if not expo_push_token:
            raise ValidationError("Expo push token is required")

        user = self.users.get_by_id(user_id)
        if not user:
            raise AuthenticationError("User not found")

        user.expo_push_token = expo_push_token
        self.users.update_user(user)

        return AuthResult(success=True, user=user, message="Push token updated successfully")

