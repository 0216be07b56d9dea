"""ORM model for address book accounts (auth and RBAC)."""

from sqlalchemy import Column, Enum, Integer, String
from sqlalchemy.orm import relationship

from addressbook.core.roles import Role
from addressbook.models.base import Base


class User(Base):
    """
    Account that owns contacts and authenticates with email + password.

    email is the immutable identity used as the token subject.
    reset_token holds at most one outstanding password reset token; it is
    cleared when the token is used or the password is changed.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(64), nullable=False)
    last_name = Column(String(64), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(
            Role,
            native_enum=False,
            length=32,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.USER,
    )
    reset_token = Column(String(1024), nullable=True)

    contacts = relationship("Contact", back_populates="owner", lazy="noload")
