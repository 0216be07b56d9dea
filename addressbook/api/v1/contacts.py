"""Address book endpoints. Every route requires a Bearer session token."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from addressbook.api.v1.deps import get_bearer_token, get_contact_service
from addressbook.schemas.auth import MessageResponse
from addressbook.schemas.contact import ContactList, ContactPayload, ContactRead
from addressbook.services.contacts import ContactService

router = APIRouter()

Contacts = Annotated[ContactService, Depends(get_contact_service)]
Token = Annotated[str, Depends(get_bearer_token)]


@router.get("", response_model=ContactList)
def list_my_contacts(service: Contacts, token: Token) -> ContactList:
    """List the caller's own contacts."""
    return ContactList(contacts=service.list_owned(token))


@router.get("/all", response_model=ContactList)
def list_all_contacts(service: Contacts, token: Token) -> ContactList:
    """List every contact across owners (admin only)."""
    return ContactList(contacts=service.list_all(token))


@router.get("/{contact_id}", response_model=ContactRead)
def get_contact(contact_id: int, service: Contacts, token: Token) -> ContactRead:
    return service.read_owned(token, contact_id)


@router.post("", response_model=ContactRead, status_code=status.HTTP_201_CREATED)
def create_contact(body: ContactPayload, service: Contacts, token: Token) -> ContactRead:
    return service.create(token, body)


@router.put("/{contact_id}", response_model=MessageResponse)
def update_contact(
    contact_id: int, body: ContactPayload, service: Contacts, token: Token
) -> MessageResponse:
    """Overwrite an owned contact. 404 if it does not exist or is not the caller's."""
    if not service.update(contact_id, body, token):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Contact {contact_id} not found or not owned by you.",
        )
    return MessageResponse(message="Contact updated successfully!")


@router.delete("/{contact_id}", response_model=MessageResponse)
def delete_contact(contact_id: int, service: Contacts, token: Token) -> MessageResponse:
    service.delete(contact_id, token)
    return MessageResponse(message="Contact deleted successfully!")
