"""Shared pytest fixtures for the supplier ledger API tests."""

import os
import tempfile

# Point the app at an in-memory database before any backend module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RECONCILE_SCHEDULE_ENABLED"] = "false"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="ledger-logs-"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from decimal import Decimal  # noqa: E402
from typing import Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts from an empty schema."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def register(client: TestClient, email: str, password: str = PASSWORD) -> Dict:
    response = client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    # The first account ever registered becomes the admin
    data = register(client, "admin@example.com")
    assert data["user"]["role"] == "admin"
    return bearer(data["access_token"])


@pytest.fixture
def viewer_headers(client, admin_headers):
    data = register(client, "viewer@example.com")
    assert data["user"]["role"] == "viewer"
    return bearer(data["access_token"])


@pytest.fixture
def editor_headers(client, admin_headers):
    data = register(client, "editor@example.com")
    response = client.patch(f"/users/{data['user']['id']}/role", json={"role": "editor"}, headers=admin_headers)
    assert response.status_code == 200, response.text
    return bearer(data["access_token"])


def create_supplier(client: TestClient, headers: Dict[str, str], **overrides) -> Dict:
    payload = {"name": "Al-Noor Trading", "category": "Food Supplies", "opening_balance": "0"}
    payload.update(overrides)
    response = client.post("/suppliers/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_transaction(client: TestClient, headers: Dict[str, str], supplier_id: int, type_: str, amount, date: str = "2024-03-01", **extra) -> Dict:
    payload = {"supplier_id": supplier_id, "type": type_, "amount": str(amount), "date": date}
    payload.update(extra)
    response = client.post("/transactions/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def get_balance(client: TestClient, headers: Dict[str, str], supplier_id: int) -> Decimal:
    response = client.get(f"/suppliers/{supplier_id}", headers=headers)
    assert response.status_code == 200, response.text
    return Decimal(response.json()["balance"])
