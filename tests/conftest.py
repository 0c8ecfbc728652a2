"""
Shared fixtures: a seeded in-memory repository, a store/coordinator pair over
it, and a SQLite-backed SQL repository for the persistence tests.
"""
import os
from datetime import date, datetime, time, timedelta
from unittest.mock import patch

# No database, no third-party credentials: settings are read once at import
for key in ("DATABASE_URL", "POSTGRES_HOST", "POSTGRES_DB", "POSTGRES_USER", "OPENAI_API_KEY",
            "SENDGRID_API_KEY", "EMAIL_FROM", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_FROM"):
    os.environ.pop(key, None)
os.environ["APP_ENV"] = "testing"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool

from companion.core.config import settings
from companion.repositories.memory import DEMO_OWNER_ID, InMemoryRepository, seed_demo_data
from companion.services.identity import AccountService
from companion.services.mutations import MutationCoordinator
from companion.services.store import CollectionStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" for scheduling rules: a Wednesday morning
NOW = datetime(2026, 10, 21, 9, 0)
TODAY = NOW.date()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def repo():
    repository = InMemoryRepository()
    seed_demo_data(repository, DEMO_OWNER_ID, today=TODAY)
    return repository


@pytest.fixture
def store(repo):
    return CollectionStore(repo)


@pytest.fixture
def coordinator(repo, store, clock):
    return MutationCoordinator(repo, store, clock=clock)


@pytest.fixture
def accounts(repo):
    return AccountService(repo, secret="test-secret", expire_minutes=30, require_email_confirmation=False)


@pytest.fixture
def fast_hashing():
    """bcrypt is slow on purpose; plaintext-compatible hashing keeps tests quick."""
    with patch("companion.services.identity.hash_password", side_effect=lambda p: f"plain${p}"), \
         patch("companion.services.identity.verify_password", side_effect=lambda p, h: h == f"plain${p}"):
        yield


@pytest.fixture
def settings_override():
    """Temporarily set attributes on the settings singleton."""
    originals = {}

    def _set(**values):
        for name, value in values.items():
            originals.setdefault(name, getattr(settings, name))
            setattr(settings, name, value)

    yield _set
    for name, value in originals.items():
        setattr(settings, name, value)


@pytest_asyncio.fixture
async def sql_session_factory():
    from companion.db.base import init_db

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()
