"""Pydantic request/response schemas."""

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
from addressbook.schemas.contact import ContactList, ContactPayload, ContactRead
from addressbook.schemas.health import HealthResponse

__all__ = [
    "ChangePasswordRequest",
    "ContactList",
    "ContactPayload",
    "ContactRead",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "NewPasswordRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserRead",
]
