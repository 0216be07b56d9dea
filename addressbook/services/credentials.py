"""Registration, login, and password reset/change flows.

Session and reset tokens both have the user's email as subject and differ by
their signed purpose claim. A reset token is only accepted if it also matches
the user's stored reset_token, which is cleared on use, so each reset token
works at most once and never as a session credential.
"""

import hmac
import logging
from dataclasses import dataclass

from addressbook.core.roles import DEFAULT_ROLE, Role
from addressbook.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from addressbook.models import User
from addressbook.services.errors import BadCredential, DuplicateIdentity, InvalidToken, NotFound
from addressbook.services.notifications import BestEffortDispatcher, redact_email
from addressbook.services.repositories import UserRepository
from addressbook.services.tokens import RESET, SESSION, TokenClaims, TokenService

logger = logging.getLogger(__name__)

REGISTERED_BODY = (
    "Hi {first_name},\n\n"
    "You have successfully registered with the Address Book app.\n\n"
    "First Name: {first_name}\n"
    "Last Name: {last_name}\n"
    "Email: {email}\n"
)
LOGGED_IN_BODY = "Hi {first_name},\n\nYou have successfully logged in to the Address Book app."
RESET_REQUEST_BODY = (
    "Hi {first_name},\n\n"
    "We received a request to reset your account password.\n"
    "If you did not make this request you can ignore this email. "
    "Do not share the token below with anyone.\n\n"
    "Reset your password at: {reset_url}\n\n"
    "Send this token in the X-Reset-Token header: {token}\n\n"
    "The token expires in {minutes} minutes and can be used once."
)
RESET_DONE_BODY = "Hi {first_name},\n\nYour password has been reset successfully."
CHANGED_BODY = "Hi {first_name},\n\nYour password has been changed successfully."


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _same_token(stored: str | None, presented: str) -> bool:
    return bool(stored) and hmac.compare_digest(stored.encode(), presented.encode())


@dataclass(frozen=True)
class AuthContext:
    """A verified session: the acting user and the claims of the token used."""

    user: User
    claims: TokenClaims
    token: str

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> Role:
        # Stored role is authoritative; the claim is informational.
        return Role.parse(self.user.role)


class CredentialService:
    """User credential lifecycle on top of UserRepository and TokenService."""

    def __init__(
        self,
        users: UserRepository,
        tokens: TokenService,
        dispatcher: BestEffortDispatcher,
        *,
        password_rounds: int = BCRYPT_ROUNDS,
        reset_url: str = "http://localhost:8000/reset-password",
    ) -> None:
        self.users = users
        self.tokens = tokens
        self.dispatcher = dispatcher
        self.password_rounds = password_rounds
        self.reset_url = reset_url

    def _hash(self, raw_password: str) -> str:
        return hash_password(raw_password, rounds=self.password_rounds)

    def register(
        self, email: str, raw_password: str, *, first_name: str, last_name: str
    ) -> User:
        """Create a user with the default role. Raises DuplicateIdentity if the email exists."""
        email = normalize_email(email)
        if self.users.find_by_email(email) is not None:
            raise DuplicateIdentity(f"User already exists: {email}")
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=self._hash(raw_password),
            role=DEFAULT_ROLE,
            reset_token=None,
        )
        user = self.users.save(user)
        logger.info("Registered user id=%s", user.id)
        self.dispatcher.notify(
            user.email,
            "Registration Successful!",
            REGISTERED_BODY.format(
                first_name=user.first_name, last_name=user.last_name, email=user.email
            ),
        )
        self.dispatcher.publish(f"user.registered id={user.id}")
        return user

    def login(self, email: str, raw_password: str) -> str:
        """
        Return a session token. Raises NotFound for an unknown email and
        BadCredential for a wrong password.
        """
        email = normalize_email(email)
        user = self.users.find_by_email(email)
        if user is None:
            logger.info("Login failed: unknown identity %s", redact_email(email))
            raise NotFound("User not found.")
        if not verify_password(raw_password, user.password_hash):
            logger.info("Login failed: bad password for user id=%s", user.id)
            raise BadCredential("Password is incorrect.")
        token = self.tokens.issue(user.email, Role(user.role))
        logger.info("User id=%s logged in", user.id)
        self.dispatcher.notify(
            user.email,
            "Logged in Successfully!",
            LOGGED_IN_BODY.format(first_name=user.first_name),
        )
        self.dispatcher.publish(f"user.logged_in id={user.id}")
        return token

    def authenticate(self, session_token: str) -> AuthContext:
        """
        Verify a session token and resolve its subject to a stored user.
        Raises InvalidToken/ExpiredToken from verification, NotFound if the
        user no longer exists, and InvalidToken for any reset token, whether it is
        outstanding, used or replaced.
        """
        claims = self.tokens.verify_claims(session_token)
        if claims.purpose != SESSION:
            raise InvalidToken("Reset tokens cannot be used as session credentials.")
        user = self.users.find_by_email(claims.subject)
        if user is None:
            raise NotFound("User not found.")
        return AuthContext(user=user, claims=claims, token=session_token)

    def request_reset(self, email: str) -> bool:
        """
        Issue a reset token, store it on the user (replacing any earlier one),
        and send it out-of-band. The token is never returned to the caller.
        """
        email = normalize_email(email)
        user = self.users.find_by_email_for_update(email)
        if user is None:
            self.users.release()
            raise NotFound("User not found.")
        token = self.tokens.issue_reset(user.email, Role(user.role))
        user.reset_token = token
        self.users.save(user)
        logger.info("Password reset requested for user id=%s", user.id)
        minutes = int(self.tokens.reset_ttl.total_seconds() // 60)
        self.dispatcher.notify(
            user.email,
            "Password Reset Request",
            RESET_REQUEST_BODY.format(
                first_name=user.first_name,
                reset_url=self.reset_url,
                token=token,
                minutes=minutes,
            ),
        )
        return True

    def reset_password(self, reset_token: str, new_raw_password: str) -> bool:
        """
        Set a new password using a reset token. The token must be the user's
        current stored reset token; it is cleared so a replay fails with InvalidToken.
        """
        claims = self.tokens.verify_claims(reset_token)
        if claims.purpose != RESET:
            raise InvalidToken("Not a password reset token.")
        new_hash = self._hash(new_raw_password)
        user = self.users.find_by_email_for_update(claims.subject)
        if user is None:
            self.users.release()
            raise NotFound("User not found.")
        if not _same_token(user.reset_token, reset_token):
            self.users.release()
            logger.warning("Rejected stale or reused reset token for user id=%s", user.id)
            raise InvalidToken("Reset token has already been used or was replaced.")
        user.password_hash = new_hash
        user.reset_token = None
        self.users.save(user)
        logger.info("Password reset for user id=%s", user.id)
        self.dispatcher.notify(
            user.email,
            "Password Reset Successfully!",
            RESET_DONE_BODY.format(first_name=user.first_name),
        )
        return True

    def change_password(
        self,
        session_token: str,
        new_raw_password: str,
        current_password: str | None = None,
    ) -> bool:
        """
        Set a new password for the holder of a session token. current_password
        is checked when given (BadCredential on mismatch). Any outstanding
        reset token is cleared.
        """
        context = self.authenticate(session_token)
        new_hash = self._hash(new_raw_password)
        user = self.users.find_by_email_for_update(context.user.email)
        if user is None:
            self.users.release()
            raise NotFound("User not found.")
        if current_password is not None and not verify_password(
            current_password, user.password_hash
        ):
            self.users.release()
            raise BadCredential("Current password is incorrect.")
        user.password_hash = new_hash
        user.reset_token = None
        self.users.save(user)
        logger.info("Password changed for user id=%s", user.id)
        self.dispatcher.notify(
            user.email,
            "Password Changed Successfully!",
            CHANGED_BODY.format(first_name=user.first_name),
        )
        return True

    def assign_role(self, email: str, role: Role) -> User:
        """Set a user's role. Admin tooling only; not exposed over HTTP."""
        email = normalize_email(email)
        user = self.users.find_by_email_for_update(email)
        if user is None:
            self.users.release()
            raise NotFound("User not found.")
        user.role = Role(role)
        user = self.users.save(user)
        logger.info("User id=%s role set to %s", user.id, Role(user.role).value)
        return user
