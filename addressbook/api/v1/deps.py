"""Shared FastAPI dependencies: services, cache, and bearer token extraction."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from addressbook.core.config import get_settings
from addressbook.core.database import get_db
from addressbook.services.cache import ContactCache, build_contact_cache
from addressbook.services.contacts import ContactService
from addressbook.services.credentials import CredentialService
from addressbook.services.notifications import BestEffortDispatcher, build_dispatcher
from addressbook.services.repositories import ContactRepository, UserRepository
from addressbook.services.tokens import TokenService

security = HTTPBearer(auto_error=False)


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built once from settings."""
    return TokenService.from_settings(get_settings())


@lru_cache
def get_contact_cache() -> ContactCache:
    return build_contact_cache(get_settings())


@lru_cache
def get_dispatcher() -> BestEffortDispatcher:
    return build_dispatcher(get_settings())


def get_credential_service(
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    dispatcher: Annotated[BestEffortDispatcher, Depends(get_dispatcher)],
) -> CredentialService:
    return CredentialService(
        UserRepository(db),
        tokens,
        dispatcher,
        reset_url=get_settings().PASSWORD_RESET_URL,
    )


def get_contact_service(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[CredentialService, Depends(get_credential_service)],
    cache: Annotated[ContactCache, Depends(get_contact_cache)],
) -> ContactService:
    return ContactService(ContactRepository(db), credentials, cache)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Dependency: require an Authorization: Bearer header. Raises 401 if missing."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
