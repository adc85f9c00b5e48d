"""
VoterDesk - test configuration and fixtures
"""
import os
import random
from typing import Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app is imported
os.environ["VOTERDESK_DATABASE_URL"] = "sqlite://"
os.environ["VOTERDESK_SECRET_KEY"] = "test-secret-key-for-testing-only"

from voterdesk.main import app
from voterdesk.database import Base, get_db
from voterdesk.auth import create_access_token
from voterdesk.schemas import UserCreate
from voterdesk.store import RecordStore

fake = Faker()

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh database for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def store(db_session: Session) -> RecordStore:
    return RecordStore(db_session)


@pytest.fixture
def override_db(db_session: Session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_db) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(store: RecordStore):
    def _make(role: str = "user", username: str | None = None, password: str = "secret"):
        return store.create_user(UserCreate(
            username=username or fake.unique.user_name(),
            password=password,
            full_name=fake.name(),
            role=role,
        ))
    return _make


def headers_for(user) -> dict:
    token = create_access_token({"sub": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def mamdhoob(make_user):
    return make_user("mamdhoob")


@pytest.fixture
def plain_user(make_user):
    return make_user("user")


@pytest.fixture
def admin_headers(admin) -> dict:
    return headers_for(admin)


@pytest.fixture
def mamdhoob_headers(mamdhoob) -> dict:
    return headers_for(mamdhoob)


@pytest.fixture
def user_headers(plain_user) -> dict:
    return headers_for(plain_user)


def voter_payload(**overrides) -> dict:
    data = {
        "id_card_number": f"A{random.randint(100000, 999999)}",
        "full_name": fake.name(),
        "gender": random.choice(["Male", "Female"]),
        "address": fake.street_address(),
        "island": "Male",
        "phone_number": fake.msisdn()[:7],
        "has_voted": False,
        "registrar_party": "MDP",
        "sheema": False,
        "sadiq": False,
        "communicated": False,
        "notes": "",
    }
    data.update(overrides)
    return data


@pytest.fixture
def voter_factory(client: TestClient, admin_headers: dict):
    def _create(**overrides) -> dict:
        response = client.post("/voters", json=voter_payload(**overrides), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def headers():
    return headers_for


@pytest.fixture
def new_voter():
    return voter_payload
