"""
Shared fixtures for the SkillSwap test suite.

Unit tests run against an in-memory SQLite database on a StaticPool so
every session in a test sees the same data. Time is controlled through
the ``clock`` fixture, which replaces ``utc_now`` in the modules that
read the current time.
"""

from datetime import datetime, timedelta, timezone
import itertools
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from skillswap import models  # noqa: F401  (registers tables)
from skillswap.core import session_lock
from skillswap.database import Base
from skillswap.models.user import User, UserStatus
from skillswap.schemas.session import SessionCreate
from skillswap.services.session_service import SessionService

from session_factories import build_create

# Monday 2030-01-07 09:00 UTC
DEFAULT_NOW = datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)

CLOCK_TARGETS = (
    "skillswap.services.session_service.utc_now",
    "skillswap.services.session_expiry_service.utc_now",
)


class FrozenClock:
    """Callable stand-in for utc_now that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture
def clock(monkeypatch) -> FrozenClock:
    frozen = FrozenClock(DEFAULT_NOW)
    for target in CLOCK_TARGETS:
        monkeypatch.setattr(target, frozen)
    return frozen


@pytest.fixture(autouse=True)
def _fresh_local_locks():
    session_lock.reset_local_locks()
    yield
    session_lock.reset_local_locks()


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestSessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestSessionLocal()
    yield session
    session.rollback()
    session.close()


_user_seq = itertools.count(1)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(
        first_name: str = "Test",
        last_name: str = "User",
        status: UserStatus = UserStatus.ACTIVE,
        is_email_verified: bool = True,
        email: Optional[str] = None,
    ) -> User:
        n = next(_user_seq)
        user = User(
            email=email or f"{first_name.lower()}.{n}@example.com",
            first_name=first_name,
            last_name=last_name,
            status=status.value,
            is_email_verified=is_email_verified,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def alice(make_user) -> User:
    return make_user("Alice", "Anders")


@pytest.fixture
def bob(make_user) -> User:
    return make_user("Bob", "Baker")


@pytest.fixture
def carol(make_user) -> User:
    return make_user("Carol", "Chen")


@pytest.fixture
def session_service(db: Session) -> SessionService:
    return SessionService(db)


@pytest.fixture
def create_payload() -> Callable[..., SessionCreate]:
    return build_create
