"""Shared builders for service-level tests: in-memory SQLite and a controllable clock."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from addressbook.models import Base
from addressbook.schemas.contact import ContactPayload
from addressbook.services.cache import ContactCache, MemoryContactCache
from addressbook.services.contacts import ContactService
from addressbook.services.credentials import CredentialService
from addressbook.services.notifications import BestEffortDispatcher
from addressbook.services.repositories import ContactRepository, UserRepository
from addressbook.services.tokens import TokenService

TEST_SECRET = "test-secret-with-enough-bytes-for-hs256"
# Lowest bcrypt cost; keeps tests fast.
TEST_BCRYPT_ROUNDS = 4
START = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Mutable 'now' shared by the token service and the memory cache timer."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def timestamp(self) -> float:
        return self.current.timestamp()

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


def make_session() -> Session:
    """Fresh in-memory SQLite database with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


@dataclass
class Harness:
    session: Session
    clock: FakeClock
    tokens: TokenService
    notifier: MagicMock
    publisher: MagicMock
    cache: ContactCache
    credentials: CredentialService
    contacts: ContactService
    users: UserRepository = field(init=False)

    def __post_init__(self) -> None:
        self.users = self.credentials.users

    def register(self, email: str, password: str = "Secret123!", first: str = "Jane") -> None:
        self.credentials.register(email, password, first_name=first, last_name="Doe")

    def login(self, email: str, password: str = "Secret123!") -> str:
        return self.credentials.login(email, password)

    def user_with_token(self, email: str) -> str:
        self.register(email)
        return self.login(email)


def build_harness(
    *,
    session_ttl: timedelta = timedelta(minutes=5),
    reset_ttl: timedelta = timedelta(minutes=15),
    cache: ContactCache | None = None,
) -> Harness:
    session = make_session()
    clock = FakeClock()
    tokens = TokenService(
        TEST_SECRET, session_ttl=session_ttl, reset_ttl=reset_ttl, now=clock
    )
    notifier = MagicMock()
    publisher = MagicMock()
    dispatcher = BestEffortDispatcher(notifier, publisher)
    credentials = CredentialService(
        UserRepository(session),
        tokens,
        dispatcher,
        password_rounds=TEST_BCRYPT_ROUNDS,
    )
    if cache is None:
        cache = MemoryContactCache(maxsize=128, timer=clock.timestamp)
    contacts = ContactService(ContactRepository(session), credentials, cache)
    return Harness(
        session=session,
        clock=clock,
        tokens=tokens,
        notifier=notifier,
        publisher=publisher,
        cache=cache,
        credentials=credentials,
        contacts=contacts,
    )


def contact_payload(**overrides: object) -> ContactPayload:
    """Build a valid ContactPayload for tests."""
    data = {
        "first_name": "Alice",
        "last_name": "Smith",
        "address": "12 Baker Street",
        "email": "alice@example.com",
        "phone_number": "9876543210",
    }
    data.update(overrides)
    return ContactPayload(**data)
