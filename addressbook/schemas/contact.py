"""Request/response schemas for address book contacts."""

from pydantic import BaseModel, ConfigDict, Field

from addressbook.schemas.auth import NAME_PATTERN, EmailAddress

ADDRESS_PATTERN = r"^[0-9A-Z][0-9a-zA-Z\s\-/,.]*$"
PHONE_PATTERN = r"^[6-9][0-9]{9}$"


class ContactPayload(BaseModel):
    """Mutable contact fields, used for both create and update."""

    first_name: str = Field(
        ...,
        min_length=3,
        max_length=30,
        pattern=NAME_PATTERN,
        description="Starts with a capital letter; letters only",
    )
    last_name: str = Field(
        ...,
        min_length=3,
        max_length=30,
        pattern=NAME_PATTERN,
        description="Starts with a capital letter; letters only",
    )
    address: str = Field(
        ...,
        min_length=3,
        max_length=50,
        pattern=ADDRESS_PATTERN,
        description="Starts with a number or capital letter",
    )
    email: EmailAddress
    phone_number: str = Field(
        ..., pattern=PHONE_PATTERN, description="10 digits, starting with 6-9"
    )


class ContactRead(BaseModel):
    """Contact as returned to its owner (and cached)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    first_name: str
    last_name: str
    address: str
    email: str
    phone_number: str


class ContactList(BaseModel):
    """Wrapper for list responses."""

    contacts: list[ContactRead]
