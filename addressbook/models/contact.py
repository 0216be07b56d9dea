"""ORM model for address book entries."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from addressbook.models.base import Base


class Contact(Base):
    """
    One address book entry. Every contact has exactly one owner; owner_id is
    set on creation and never changed.
    """

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    first_name = Column(String(64), nullable=False)
    last_name = Column(String(64), nullable=False)
    address = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=False)

    owner = relationship("User", back_populates="contacts", lazy="noload")
