"""Typed error kinds surfaced by the credential and contact services.

Each error carries an HTTP status_code and a stable error_code so the API layer
can render it without a per-route mapping. ExpiredToken and InvalidToken are
siblings: callers distinguish "log in again" from "reject outright".
"""


class AddressBookError(Exception):
    """Base class for service-layer errors."""

    status_code: int = 400
    error_code: str = "bad_request"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DuplicateIdentity(AddressBookError):
    """A user with this email is already registered."""

    status_code = 409
    error_code = "duplicate_identity"


class NotFound(AddressBookError):
    """The requested user or contact does not exist."""

    status_code = 404
    error_code = "not_found"


class BadCredential(AddressBookError):
    """The password does not match the stored hash."""

    status_code = 401
    error_code = "bad_credential"


class InvalidToken(AddressBookError):
    """Token is malformed, has a bad signature, or is not valid in this context."""

    status_code = 401
    error_code = "invalid_token"


class ExpiredToken(AddressBookError):
    """Token is well-formed and correctly signed but past its expiry."""

    status_code = 401
    error_code = "expired_token"


class Forbidden(AddressBookError):
    """The acting user may not access this record or operation."""

    status_code = 403
    error_code = "forbidden"


class StorageError(AddressBookError):
    """The backing store failed to read or write."""

    status_code = 503
    error_code = "storage_error"


class ConfigurationError(AddressBookError):
    """Fatal misconfiguration (e.g. missing signing secret). Raised at startup only."""

    status_code = 500
    error_code = "configuration_error"
