import os

# Must be set before any smart_waste import reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["STRICT_TRACKING_TRANSITIONS"] = "false"

from datetime import timedelta
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from smart_waste.db.models import (
    Base,
    IndustryType,
    Pickup,
    PickupStatus,
    PickupWasteType,
    TimeSlot,
    User,
    UserType,
)
from smart_waste.db.session import SessionLocal, engine, get_sync_session
from smart_waste.main import app
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.utils.auth import AuthUtils
from smart_waste.utils.datetime_utils import naive_utc_now

TEST_PASSWORD = "password123"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Hash once per session; bcrypt is slow."""
    return AuthUtils.hash_password(TEST_PASSWORD)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh in-memory schema and session for each test."""
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client whose requests share the test's session."""

    def override_get_sync_session():
        yield db_session

    app.dependency_overrides[get_sync_session] = override_get_sync_session
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# Test data factories
@pytest.fixture
def make_user(db_session: Session, password_hash: str) -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(user_type: UserType = UserType.CITIZEN, **overrides) -> User:
        counter["n"] += 1
        fields = dict(
            name=f"{user_type.value.title()} User {counter['n']}",
            email=f"{user_type.value}{counter['n']}@example.com",
            password_hash=password_hash,
            user_type=user_type,
            phone="9876543210",
        )
        if user_type == UserType.INDUSTRY:
            fields.update(
                company_name=f"Acme Industries {counter['n']}",
                industry_type=IndustryType.MANUFACTURING,
                waste_generation_capacity=12.5,
            )
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def citizen(make_user) -> User:
    return make_user(UserType.CITIZEN)


@pytest.fixture
def industry(make_user) -> User:
    return make_user(UserType.INDUSTRY)


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserType.ADMIN)


@pytest.fixture
def pickup_agent(make_user) -> User:
    return make_user(UserType.PICKUP_AGENT)


@pytest.fixture
def make_pickup(db_session: Session) -> Callable[..., Pickup]:
    """Insert a pickup row directly, bypassing point awards."""

    def _make_pickup(user: User, **overrides) -> Pickup:
        fields = dict(
            user_id=user.id,
            waste_type=PickupWasteType.RECYCLABLE,
            pickup_date=naive_utc_now() + timedelta(days=2),
            time_slot=TimeSlot.MORNING,
            address="12 Green Street",
            estimated_weight=5,
            status=PickupStatus.SCHEDULED,
        )
        fields.update(overrides)
        pickup = Pickup(**fields)
        db_session.add(pickup)
        db_session.commit()
        db_session.refresh(pickup)
        return pickup

    return _make_pickup


def actor(user: User) -> AuthState:
    """Authenticated caller for service-level tests."""
    return AuthState(
        user_id=user.id,
        email=user.email,
        name=user.name,
        user_type=user.user_type.value,
    )


def auth_headers(user: User) -> Dict[str, str]:
    token = AuthUtils.generate_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        user_type=user.user_type.value,
    )
    return {"Authorization": f"Bearer {token}"}
