"""
Authentication endpoints.

Handles phone OTP login, email registration and login, and the push
token update for signed-in users.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from bookworm.services import AuthResult
from ..deps import ServicesDep, CurrentTokenPayload

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models
# Presence checks live in the service so every protocol reports its own
# message; the models only enforce types. A missing body is read as {}.

class OTPRequest(BaseModel):
    """OTP request."""
    phone: Optional[str] = Field(None, description="Phone number (e.g., +15551234567)")


class OTPVerifyRequest(BaseModel):
    """OTP verification request."""
    phone: Optional[str] = Field(None, description="Phone number the code was sent to")
    otp: Optional[str] = Field(None, description="6-digit code")


class RegisterRequest(BaseModel):
    """User registration request."""
    email: Optional[str] = Field(None, description="Email address")
    username: Optional[str] = Field(None, description="Username (min 3 chars)")
    password: Optional[str] = Field(None, description="Password (min 6 chars)")


class LoginRequest(BaseModel):
    """Login request."""
    email: Optional[str] = Field(None, description="Email address")
    password: Optional[str] = Field(None, description="Password")


class PushTokenRequest(BaseModel):
    """Expo push token update request."""
    model_config = ConfigDict(populate_by_name=True)

    expo_push_token: Optional[str] = Field(None, alias="expoPushToken")


class OTPRequestResponse(BaseModel):
    """OTP request acknowledgement."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    is_new_user: bool = Field(alias="isNewUser")


class PhoneUserResponse(BaseModel):
    """Public profile of an OTP user."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    phone_number: Optional[str] = Field(alias="phoneNumber")
    profile_image: str = Field(alias="profileImage")
    created_at: str = Field(alias="createdAt")


class EmailUserResponse(BaseModel):
    """Public profile of an email user."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: Optional[str]
    profile_image: str = Field(alias="profileImage")
    created_at: str = Field(alias="createdAt")


class PhoneAuthResponse(BaseModel):
    """Session token with OTP user profile."""
    token: str
    user: PhoneUserResponse


class EmailAuthResponse(BaseModel):
    """Session token with email user profile."""
    token: str
    user: EmailUserResponse


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


def _raise_on_failure(result: AuthResult):
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.error)


def _email_auth_response(result: AuthResult) -> EmailAuthResponse:
    return EmailAuthResponse(
        token=result.token,
        user=EmailUserResponse.model_validate(result.user.public_profile())
    )


# Endpoints

@router.post("/request-otp", response_model=OTPRequestResponse)
def request_otp(services: ServicesDep, request: Optional[OTPRequest] = None):
    """
    Request a one-time passcode.

    The code is valid for 5 minutes. isNewUser reports whether an account
    already exists for the phone; the account itself is created on
    verification.
    """
    request = request or OTPRequest()
    result = services.user_auth.request_otp(request.phone)
    _raise_on_failure(result)

    return OTPRequestResponse(message=result.message, is_new_user=result.is_new_user)


@router.post("/verify-otp", response_model=PhoneAuthResponse)
def verify_otp(services: ServicesDep, request: Optional[OTPVerifyRequest] = None):
    """
    Verify a one-time passcode.

    Returns a session token, creating the account on first login.
    """
    request = request or OTPVerifyRequest()
    result = services.user_auth.verify_otp(request.phone, request.otp)
    _raise_on_failure(result)

    return PhoneAuthResponse(
        token=result.token,
        user=PhoneUserResponse.model_validate(
            result.user.public_profile(include_phone=True)
        )
    )


@router.post(
    "/register",
    response_model=EmailAuthResponse,
    status_code=status.HTTP_201_CREATED
)
def register(services: ServicesDep, request: Optional[RegisterRequest] = None):
    """
    Register a new user.

    Creates an account with email, username and password.
    Returns a session token on success.
    """
    request = request or RegisterRequest()
    result = services.user_auth.register(
        email=request.email,
        username=request.username,
        password=request.password
    )
    _raise_on_failure(result)

    return _email_auth_response(result)


@router.post("/login", response_model=EmailAuthResponse)
def login(services: ServicesDep, request: Optional[LoginRequest] = None):
    """
    Login with email and password.

    Returns a session token on success.
    """
    request = request or LoginRequest()
    result = services.user_auth.login(email=request.email, password=request.password)
    _raise_on_failure(result)

    return _email_auth_response(result)


@router.put("/update-expo-token", response_model=MessageResponse)
def update_expo_token(
    token: CurrentTokenPayload,
    services: ServicesDep,
    request: Optional[PushTokenRequest] = None
):
    """
    Store the Expo push token for the signed-in user.

    Requires a valid session token.
    """
    request = request or PushTokenRequest()
    result = services.user_auth.update_push_token(token.user_id, request.expo_push_token)
    _raise_on_failure(result)

    return MessageResponse(message=result.message)
