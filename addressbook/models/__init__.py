"""SQLAlchemy ORM models."""

from addressbook.models.base import Base
from addressbook.models.contact import Contact
from addressbook.models.user import User

__all__ = ["Base", "Contact", "User"]
