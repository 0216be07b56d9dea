"""Persistence for users and contacts: find/save/delete by key and by owner.

Database errors are rolled back and re-raised as StorageError. Writes commit
before returning, so callers can evict cache entries after the commit.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from addressbook.models import Contact, User
from addressbook.services.errors import DuplicateIdentity, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Repository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _run(self, action: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Storage failure during %s: %s", action, e)
            raise StorageError(f"Storage failure during {action}.") from e

    def _commit(self, action: str) -> None:
        self._run(action, self.session.commit)


class UserRepository(_Repository):
    """User records keyed by id with a unique index on email."""

    def find_by_id(self, user_id: int) -> User | None:
        return self._run("find user", lambda: self.session.get(User, user_id))

    def find_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        return self._run("find user", lambda: self.session.scalars(stmt).first())

    def find_by_email_for_update(self, email: str) -> User | None:
        """Load and row-lock the user so concurrent password writes serialize."""
        stmt = (
            select(User)
            .where(User.email == email)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._run("lock user", lambda: self.session.scalars(stmt).first())

    def release(self) -> None:
        """Roll back the open transaction, dropping any row locks."""
        self.session.rollback()

    def find_all(self) -> list[User]:
        stmt = select(User).order_by(User.id)
        return self._run("list users", lambda: list(self.session.scalars(stmt)))

    def save(self, user: User) -> User:
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateIdentity(f"User already exists: {user.email}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Storage failure during save user: %s", e)
            raise StorageError("Storage failure during save user.") from e
        self._run("refresh user", lambda: self.session.refresh(user))
        return user


class ContactRepository(_Repository):
    """Contact records keyed by id with a secondary index on owner id."""

    def find_by_id(self, contact_id: int) -> Contact | None:
        return self._run("find contact", lambda: self.session.get(Contact, contact_id))

    def find_by_owner(self, owner_id: int) -> list[Contact]:
        stmt = select(Contact).where(Contact.owner_id == owner_id).order_by(Contact.id)
        return self._run("list contacts", lambda: list(self.session.scalars(stmt)))

    def find_all(self) -> list[Contact]:
        stmt = select(Contact).order_by(Contact.id)
        return self._run("list contacts", lambda: list(self.session.scalars(stmt)))

    def save(self, contact: Contact) -> Contact:
        self.session.add(contact)
        self._commit("save contact")
        self._run("refresh contact", lambda: self.session.refresh(contact))
        return contact

    def delete_by_id(self, contact_id: int) -> bool:
        """Delete the contact row and commit; return whether a row was removed."""
        stmt = delete(Contact).where(Contact.id == contact_id)
        result = self._run("delete contact", lambda: self.session.execute(stmt))
        self._commit("delete contact")
        return result.rowcount > 0
