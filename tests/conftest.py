"""Shared test setup: temporary data directory, app client and helpers."""

import os
import tempfile
import uuid

# Setup environment for testing, before familymenu.config is imported
os.environ["FAMILYMENU_DATA_DIR"] = tempfile.mkdtemp()
os.environ["FAMILYMENU_DB_PATH"] = os.path.join(os.environ["FAMILYMENU_DATA_DIR"], "test.db")
os.environ["FAMILYMENU_LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from familymenu.database import engine, init_db
from familymenu.main import app

PASSWORD = "Secreto123"


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session():
    init_db()
    with Session(engine) as s:
        yield s


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture
def register(client):
    """Register a fresh account; returns (headers, user dict)."""

    def _register(name: str = "Tester", role: str = "creator", email: str = None):
        r = client.post("/api/auth/register", json={
            "email": email or unique_email(name.lower()),
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
            "name": name,
            "role": role,
        })
        assert r.status_code == 201, f"register failed: {r.status_code} {r.text}"
        data = r.json()
        return {"Authorization": f"Bearer {data['accessToken']}"}, data["user"]

    return _register


@pytest.fixture
def family_of(client, register):
    """Register an admin with a new family; returns (headers, user, family)."""

    def _family(nombre: str = "Smiths"):
        headers, user = register("Admin")
        r = client.post("/api/family", json={"nombre": nombre}, headers=headers)
        assert r.status_code == 201, f"create family failed: {r.status_code} {r.text}"
        return headers, user, r.json()

    return _family
