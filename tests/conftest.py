import os

# must be set before proasset builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test_secret")
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin123"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from proasset.context import AppContext
from proasset.db import create_db_and_tables, engine
from proasset.main import app


@pytest.fixture()
def client():
    # fresh in-memory database per test; lifespan recreates tables and seeds admin
    SQLModel.metadata.drop_all(engine)

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session():
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    with Session(engine) as s:
        yield s


@pytest.fixture()
def ctx():
    return AppContext()


def login(client, username: str, password: str) -> dict:
    r = client.post("/auth/login", data={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture()
def admin(client):
    return login(client, "admin", "admin123")


@pytest.fixture()
def make_user(client, admin):
    """Create an active user with the given role and return its auth headers."""
    def _make(username: str, role: str, password: str = "secret1") -> dict:
        r = client.post(
            "/users",
            json={"username": username, "password": password, "name": username.title(), "role": role},
            headers=admin,
        )
        assert r.status_code == 200, r.text
        return login(client, username, password)

    return _make


@pytest.fixture()
def location(client, admin):
    r = client.post("/locations", json={"name": "Head Office"}, headers=admin)
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture()
def new_asset(client, admin, location):
    def _new(name: str, barcode: str | None = None, **extra) -> dict:
        body = {
            "name": name,
            "category": "Electronics",
            "location_id": location["id"],
            "price": 12000000,
            "purchase_date": "2024-01-15",
            "useful_life": 4,
            "barcode": barcode,
        }
        body.update(extra)
        r = client.post("/assets", json=body, headers=admin)
        assert r.status_code == 200, r.text
        return r.json()

    return _new
