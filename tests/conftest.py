import os
import tempfile

# Settings are read at import time, so the environment goes first
_TEST_DIR = tempfile.mkdtemp(prefix="vaccine-registry-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SWEEP_INTERVAL_MINUTES"] = "0"
os.environ["SEED_ADMIN_PASSWORD"] = "admin-pass"
os.environ["SEED_NURSE_PASSWORD"] = "nurse-pass"

import pytest
from fastapi.testclient import TestClient

import vaccine_registry.models  # noqa: F401
from vaccine_registry.database import Base, SessionLocal, engine
from vaccine_registry.main import app


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)

    # Lifespan creates the tables and seeds users + catalog
    with TestClient(app) as test_client:
        yield test_client


def _login(client, username, password):
    response = client.post(
        "/auth/login",
        data={"username": username, "password": password},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin-pass")


@pytest.fixture
def nurse_headers(client):
    return _login(client, "nurse", "nurse-pass")
