from typing import Generator
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.config import OrderAccess, Settings
from storefront.db import Base
from storefront.main import create_app, get_db

TEST_SECRET = "test-secret"


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def settings(tmp_path) -> Settings:
    return Settings(database_url="sqlite://", jwt_secret=TEST_SECRET, static_dir=str(tmp_path / "build"))


@pytest.fixture(scope="function")
def app(settings):
    return create_app(settings)


def _client_for(app, db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture(scope="function")
def client(app, db_session):
    with _client_for(app, db_session) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def owner_client(settings, db_session):
    app = create_app(settings._replace(order_access=OrderAccess.OWNER))
    with _client_for(app, db_session) as c:
        yield c
    app.dependency_overrides.clear()


def register_and_login(client, email="alice@example.com", password="s3cret", username="alice"):
    r = client.post("/register", json={"username": username, "email": email, "password": password, "address": "1 Main St"})
    assert r.status_code == 201
    r = client.post("/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client)
