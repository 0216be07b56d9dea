"""Issue and verify HMAC-signed bearer tokens (session and password reset).

Both token flavors share one secret, one algorithm and one claim shape:
sub, role, iat, exp, jti and a purpose ("session" or "reset"). The purpose is
signed with the rest, so a reset token can never pass as a session token, even
after it has been used or replaced.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from addressbook.core.roles import Role
from addressbook.services.errors import ConfigurationError, ExpiredToken, InvalidToken

if TYPE_CHECKING:
    from addressbook.core.config import Settings

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "role", "iat", "exp", "purpose"]

SESSION = "session"
RESET = "reset"
PURPOSES = (SESSION, RESET)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _purpose(value: Any) -> str:
    if value not in PURPOSES:
        raise ValueError(f"unknown token purpose: {value!r}")
    return value


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a bearer token."""

    subject: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    jti: str | None = None
    purpose: str = SESSION


class TokenService:
    """
    Signs and verifies tokens with a process-wide secret.

    The clock is injected so expiry is judged against the same notion of "now"
    that issued the token; PyJWT's own exp/iat checks are turned off.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(minutes=5),
        reset_ttl: timedelta = timedelta(minutes=15),
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        if not secret or not secret.strip():
            raise ConfigurationError("Token signing secret is not configured.")
        if session_ttl <= timedelta(0) or reset_ttl <= timedelta(0):
            raise ConfigurationError("Token validity windows must be positive.")
        self._secret = secret
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl
        self.now = now

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenService":
        return cls(
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            session_ttl=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
            reset_ttl=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )

    def _encode(self, subject: str, role: Role, validity: timedelta, purpose: str) -> str:
        issued_at = self.now()
        expires_at = issued_at + validity
        payload: dict[str, Any] = {
            "sub": str(subject),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": expires_at,
            "jti": uuid.uuid4().hex,
            "purpose": purpose,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue(self, subject: str, role: Role, validity: timedelta | None = None) -> str:
        """Create a session token for subject (defaults to the session window)."""
        return self._encode(
            subject, role, validity if validity is not None else self.session_ttl, SESSION
        )

    def issue_reset(self, subject: str, role: Role) -> str:
        """Create a password reset token: reset purpose, reset validity window."""
        return self._encode(subject, role, self.reset_ttl, RESET)

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidToken("Invalid token.") from e

    def _claims(self, payload: dict[str, Any]) -> TokenClaims:
        try:
            return TokenClaims(
                subject=str(payload["sub"]),
                role=Role.parse(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
                jti=payload.get("jti"),
                purpose=_purpose(payload["purpose"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise InvalidToken("Invalid token payload.") from e

    def verify_claims(self, token: str) -> TokenClaims:
        """
        Check signature and expiry; return the claims.
        Raises InvalidToken (bad signature/malformed) or ExpiredToken (past exp).
        """
        if not token:
            raise InvalidToken("Missing token.")
        claims = self._claims(self._decode(token))
        if claims.expires_at <= self.now():
            raise ExpiredToken("Token has expired.")
        return claims

    def verify(self, token: str) -> str:
        """Return the token subject if the token is valid and unexpired."""
        return self.verify_claims(token).subject

    def expiry_of(self, token: str) -> datetime:
        """
        Return the token's expiry without checking it against the clock.
        The signature is still verified; only used to size cache TTLs.
        """
        return self._claims(self._decode(token)).expires_at
