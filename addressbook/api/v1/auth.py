"""Registration, login, and password reset/change endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from addressbook.api.v1.deps import get_bearer_token, get_credential_service
from addressbook.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    NewPasswordRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from addressbook.services.credentials import CredentialService

router = APIRouter()

Credentials = Annotated[CredentialService, Depends(get_credential_service)]


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, service: Credentials) -> UserRead:
    """Create an account with the default role. 409 if the email is taken."""
    user = service.register(
        body.email,
        body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, service: Credentials) -> TokenResponse:
    """
    Authenticate with email and password; returns a JWT session token.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    token = service.login(body.email, body.password)
    return TokenResponse(access_token=token, token_type="bearer")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, service: Credentials) -> MessageResponse:
    """Email a single-use reset token to the account holder."""
    service.request_reset(body.email)
    return MessageResponse(message="Reset token sent to your email!")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: NewPasswordRequest,
    service: Credentials,
    reset_token: Annotated[str, Header(alias="X-Reset-Token")],
) -> MessageResponse:
    """Set a new password using the emailed reset token (X-Reset-Token header)."""
    service.reset_password(reset_token, body.new_password)
    return MessageResponse(message="Password reset successfully!")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    service: Credentials,
    token: Annotated[str, Depends(get_bearer_token)],
) -> MessageResponse:
    """Set a new password for the logged-in user."""
    service.change_password(token, body.new_password, body.current_password)
    return MessageResponse(message="Password changed successfully!")
