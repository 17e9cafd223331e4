"""Shared fixtures: a throwaway SQLite database, an API client and accounts."""
import asyncio
import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="sweetshop-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("SWEETSHOP_ADMIN_EMAIL", None)
os.environ.pop("SWEETSHOP_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from sweetshop.auth.functions import create_user
from sweetshop.auth.models import RoleEnum
from sweetshop.database import SessionLocal
from sweetshop.init_db import init_db, drop_db
from sweetshop.main import app


def run(coro):
    return asyncio.run(coro)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _reset_db():
    await drop_db()
    await init_db()


async def _create_admin(email: str, password: str):
    async with SessionLocal() as db:
        return await create_user(db, name="Admin User", email=email, password=password, role=RoleEnum.admin)


@pytest.fixture(autouse=True)
def fresh_db():
    run(_reset_db())
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    def _register(email="user@example.com", name="Test User", password="password123"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return auth_headers(response.json()["token"])
    return _register


@pytest.fixture
def user(register):
    return register()


@pytest.fixture
def admin(client):
    run(_create_admin("admin@example.com", "password123"))
    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "password123"})
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["token"])


@pytest.fixture
def make_sweet(client, admin):
    def _make(name="Chocolate Bar", category="Chocolate", price=2.5, quantity=10, **extra):
        payload = {"name": name, "category": category, "price": price, "quantity": quantity, **extra}
        response = client.post("/api/sweets", json=payload, headers=admin)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def stock_of(client, admin):
    def _stock(sweet_id):
        response = client.get(f"/api/sweets/{sweet_id}", headers=admin)
        assert response.status_code == 200, response.text
        return response.json()["quantity"]
    return _stock
