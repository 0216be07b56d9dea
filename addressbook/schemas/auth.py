"""Request/response schemas for auth endpoints."""

from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from addressbook.core.roles import Role
from addressbook.core.security import (
    EMAIL_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    is_strong_password,
)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
NAME_PATTERN = r"^[A-Z][a-zA-Z]*$"

STRONG_PASSWORD_MESSAGE = (
    "Password must contain an uppercase letter, a lowercase letter, a number, "
    "and a special character"
)


def _normalize_email(v: Any) -> Any:
    return v.strip().lower() if isinstance(v, str) else v


EmailAddress = Annotated[
    str,
    BeforeValidator(_normalize_email),
    Field(max_length=EMAIL_MAX_LEN, pattern=EMAIL_PATTERN),
]


class RegisterRequest(BaseModel):
    """New account details."""

    first_name: str = Field(..., min_length=3, max_length=30, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=3, max_length=30, pattern=NAME_PATTERN)
    email: EmailAddress
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailAddress
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class ForgotPasswordRequest(BaseModel):
    """Email address to send a password reset token to."""

    email: EmailAddress


class NewPasswordRequest(BaseModel):
    """New password plus confirmation, used by reset and change flows."""

    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    confirm_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("new_password")
    @classmethod
    def validate_strength(cls, v: str) -> str:
        if not is_strong_password(v):
            raise ValueError(STRONG_PASSWORD_MESSAGE)
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "NewPasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("new_password and confirm_password do not match")
        return self


class TokenResponse(BaseModel):
    """JWT session token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class UserRead(BaseModel):
    """Stored user without password material."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    role: Role


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class ChangePasswordRequest(NewPasswordRequest):
    """New password for the holder of a session token; current_password is optional."""

    current_password: str | None = Field(
        default=None,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="When given, must match the stored password",
    )
