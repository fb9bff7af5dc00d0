"""
Test fixtures for the Bank Cards API test suite.

Shared fixtures:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - cipher: A CardCipher on a fixed 32-byte key
  - client: Async HTTP test client with get_db and the cipher overridden
  - alice / bob / admin_user: Seeded users
  - alice_client / admin_client: The client carrying that user's token
  - headers_for: Bearer headers for any user, for tests that act as two users
  - make_card: Factory that inserts a card with encrypted number and CVV

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) keeps every test isolated.
  - get_db is overridden so the application code runs unchanged against
    the test database.
  - Tokens are minted with create_access_token; issuing them is the job of
    the external identity provider, not this service.
"""

import os

# Settings are read at import time; the app requires a token secret
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("CARD_ENCRYPTION_KEY", "0123456789abcdef0123456789abcdef")

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.database import Base, get_db
from app.domain.authorization import Identity, Role
from app.domain.card import CardStatus
from app.encryption import CardCipher, KeyMaterial
from app.main import app
from app.models.card import Card
from app.models.user import User
from app.security import create_access_token


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_KEY = b"0123456789abcdef0123456789abcdef"


@pytest.fixture
def cipher() -> CardCipher:
    return CardCipher(KeyMaterial(key=TEST_KEY))


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, email: str, first: str, last: str, role: Role) -> User:
    async with session_factory() as session:
        user = User(email=email, first_name=first, last_name=last, role=role)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def alice(session_factory) -> User:
    return await _create_user(session_factory, "alice@example.com", "Alice", "Chen", Role.USER)


@pytest_asyncio.fixture
async def bob(session_factory) -> User:
    return await _create_user(session_factory, "bob@example.com", "Bob", "Martinez", Role.USER)


@pytest_asyncio.fixture
async def admin_user(session_factory) -> User:
    return await _create_user(session_factory, "admin@example.com", "Admin", "User", Role.ADMIN)


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


@pytest.fixture
def make_card(session_factory, cipher):
    """
    Insert a card and return it.

    Defaults: ACTIVE, balance 0.00, expires in two years, random number
    starting with 4000 and CVV "123".
    """

    async def _make_card(
        user: User,
        balance: str = "0.00",
        status: CardStatus = CardStatus.ACTIVE,
        number: str | None = None,
        cvv: str = "123",
        expiration_date: date | None = None,
    ) -> Card:
        number = number or "4000" + f"{uuid.uuid4().int % 10**12:012d}"
        async with session_factory() as session:
            card = Card(
                user_id=user.id,
                number=cipher.encrypt(number),
                cvv=cipher.encrypt(cvv),
                holder=f"{user.first_name} {user.last_name}".upper(),
                expiration_date=expiration_date or date.today() + timedelta(days=730),
                balance=Decimal(balance),
                status=status,
            )
            session.add(card)
            await session.commit()
            return card

    return _make_card


@pytest.fixture
def get_card(session_factory):
    """Re-read a card from the database (fresh session)."""

    async def _get_card(card_id: uuid.UUID) -> Card:
        async with session_factory() as session:
            return await session.get(Card, card_id)

    return _get_card


@pytest_asyncio.fixture
async def client(session_factory, cipher):
    """
    Async HTTP test client with the test database and cipher injected.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    original_cipher = app.state.card_cipher
    app.state.card_cipher = cipher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.state.card_cipher = original_cipher
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice_client(client, alice):
    client.headers.update(auth_headers(alice))
    return client


@pytest_asyncio.fixture
async def admin_client(client, admin_user):
    client.headers.update(auth_headers(admin_user))
    return client


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def identity_for():
    return identity_of
