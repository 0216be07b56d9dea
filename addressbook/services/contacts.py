"""Owner-scoped contact CRUD with a read cache in front of the database.

Every operation first verifies the session token and resolves the acting user.
Cache entries for by-id reads are keyed by (contact id, acting user id) and the
cached owner is re-checked on every hit, so a hit never stands in for the
ownership check. Entry TTLs are the remaining lifetime of the token that
authorized the read. Mutations evict after the database commit.
"""

import logging

from addressbook.core.roles import Permission
from addressbook.models import Contact
from addressbook.schemas.contact import ContactPayload, ContactRead
from addressbook.services.cache import (
    ALL_CONTACTS_KEY,
    CachedValue,
    ContactCache,
    contact_key,
    contact_prefix,
    owner_list_key,
)
from addressbook.services.credentials import AuthContext, CredentialService
from addressbook.services.errors import Forbidden, NotFound
from addressbook.services.repositories import ContactRepository

logger = logging.getLogger(__name__)

# Fields a contact update may overwrite; id and owner_id are never changed.
MUTABLE_FIELDS = ("first_name", "last_name", "address", "email", "phone_number")


class ContactService:
    """The five contact operations, each authorized by a session token."""

    def __init__(
        self,
        contacts: ContactRepository,
        credentials: CredentialService,
        cache: ContactCache,
    ) -> None:
        self.contacts = contacts
        self.credentials = credentials
        self.cache = cache

    def _authorize(self, token: str, permission: Permission) -> AuthContext:
        context = self.credentials.authenticate(token)
        if not context.role.allows(permission):
            logger.info(
                "Denied %s for user id=%s (role %s)",
                permission.value,
                context.user_id,
                context.role.value,
            )
            raise Forbidden("You are not authorized to access this data.")
        return context

    def cache_ttl_seconds(self, context: AuthContext) -> int:
        """Whole seconds until the authorizing token expires (never rounded up)."""
        expires_at = self.credentials.tokens.expiry_of(context.token)
        return int((expires_at - self.credentials.tokens.now()).total_seconds())

    def _populate(self, key: str, value: CachedValue, context: AuthContext) -> None:
        ttl = self.cache_ttl_seconds(context)
        if ttl <= 0:
            return
        self.cache.set(key, value, ttl)

    def _load_owned(self, contact_id: int, context: AuthContext, action: str) -> Contact:
        contact = self.contacts.find_by_id(contact_id)
        if contact is None:
            raise NotFound(f"Contact not found with id: {contact_id}")
        if contact.owner_id != context.user_id:
            logger.info(
                "Denied %s of contact id=%s for user id=%s (not owner)",
                action,
                contact_id,
                context.user_id,
            )
            raise Forbidden(
                f"Cannot {action} contact with id: {contact_id}. You are not its owner."
            )
        return contact

    def _evict(self, owner_id: int, contact_id: int | None = None) -> None:
        if contact_id is not None:
            self.cache.evict_prefix(contact_prefix(contact_id))
        self.cache.evict(owner_list_key(owner_id))
        self.cache.evict(ALL_CONTACTS_KEY)

    def read_owned(self, token: str, contact_id: int) -> ContactRead:
        """Return one contact if the acting user owns it (NotFound / Forbidden otherwise)."""
        context = self._authorize(token, Permission.READ_OWN)
        key = contact_key(contact_id, context.user_id)
        cached = self.cache.get(key)
        if isinstance(cached, ContactRead):
            if cached.owner_id == context.user_id:
                return cached
            self.cache.evict(key)

        contact = self._load_owned(contact_id, context, "access")
        result = ContactRead.model_validate(contact)
        self._populate(key, result, context)
        return result

    def list_owned(self, token: str) -> list[ContactRead]:
        """Return the acting user's contacts."""
        context = self._authorize(token, Permission.READ_OWN)
        key = owner_list_key(context.user_id)
        cached = self.cache.get(key)
        if isinstance(cached, list):
            return [c for c in cached if c.owner_id == context.user_id]

        result = [
            ContactRead.model_validate(c)
            for c in self.contacts.find_by_owner(context.user_id)
        ]
        self._populate(key, result, context)
        return result

    def list_all(self, token: str) -> list[ContactRead]:
        """Return every contact across owners. Requires a role with LIST_ALL."""
        context = self._authorize(token, Permission.LIST_ALL)
        cached = self.cache.get(ALL_CONTACTS_KEY)
        if isinstance(cached, list):
            return cached

        result = [ContactRead.model_validate(c) for c in self.contacts.find_all()]
        self._populate(ALL_CONTACTS_KEY, result, context)
        return result

    def create(self, token: str, payload: ContactPayload) -> ContactRead:
        """Create a contact owned by the acting user."""
        context = self._authorize(token, Permission.WRITE_OWN)
        contact = Contact(
            owner_id=context.user_id,
            **payload.model_dump(include=set(MUTABLE_FIELDS)),
        )
        contact = self.contacts.save(contact)
        self._evict(context.user_id)
        logger.info("User id=%s created contact id=%s", context.user_id, contact.id)
        return ContactRead.model_validate(contact)

    def update(self, contact_id: int, payload: ContactPayload, token: str) -> bool:
        """
        Overwrite the mutable fields of an owned contact.

        Returns False (instead of raising) when the contact does not exist or
        belongs to another user; token and storage errors still raise.
        """
        context = self._authorize(token, Permission.WRITE_OWN)
        try:
            contact = self._load_owned(contact_id, context, "modify")
        except (NotFound, Forbidden) as e:
            logger.info("Update of contact id=%s rejected: %s", contact_id, e.message)
            return False
        values = payload.model_dump(include=set(MUTABLE_FIELDS))
        for field in MUTABLE_FIELDS:
            setattr(contact, field, values[field])
        self.contacts.save(contact)
        self._evict(context.user_id, contact_id)
        return True

    def delete(self, contact_id: int, token: str) -> None:
        """Delete an owned contact. Raises NotFound or Forbidden; ownership is checked here."""
        context = self._authorize(token, Permission.WRITE_OWN)
        self._load_owned(contact_id, context, "delete")
        self.contacts.delete_by_id(contact_id)
        self._evict(context.user_id, contact_id)
        logger.info("User id=%s deleted contact id=%s", context.user_id, contact_id)
