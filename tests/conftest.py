# tests/conftest.py

import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
for key in ("DEV_BYPASS_TOKEN", "CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
    os.environ.pop(key, None)

import asyncio
import itertools
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from main import app
from repairhub.db import db
from repairhub.utils.security import create_access_token, hash_password

PASSWORD = "secret123"
_counter = itertools.count(1)

def run(coro):
    return asyncio.run(coro)

@pytest.fixture(autouse=True)
def database():
    db.client = AsyncMongoMockClient()
    db.db = db.client["repairhub_test"]
    run(db.ensure_indexes())
    yield db.db
    db.client = None
    db.db = None

@pytest.fixture
def client():
    return TestClient(app)

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def make_user(client, database):
    """
    Create an account and return its id, token and bearer headers.

    Customers and technicians go through registration; admins cannot
    self-register so they are inserted directly.
    """
    def _make(role="customer", username=None, **extra):
        n = next(_counter)
        username = username or f"{role}{n}"
        email = f"{username}@example.com"

        if role == "admin":
            result = run(database.users.insert_one({
                "email": email,
                "username": username,
                "password": hash_password(PASSWORD),
                "role": "admin",
                "createdAt": datetime.utcnow(),
            }))
            user_id = str(result.inserted_id)
            token = create_access_token({"sub": user_id, "email": email, "role": "admin"})
        else:
            response = client.post("/api/auth/register", json={
                "email": email,
                "username": username,
                "password": PASSWORD,
                "confirmPassword": PASSWORD,
                "role": role,
                **extra,
            })
            assert response.status_code == 201, response.text
            client.cookies.clear()
            data = response.json()
            user_id = data["user"]["_id"]
            token = data["token"]

        return {
            "id": user_id,
            "email": email,
            "username": username,
            "token": token,
            "headers": auth_headers(token),
        }
    return _make

@pytest.fixture
def customer(make_user):
    return make_user("customer")

@pytest.fixture
def technician(make_user):
    return make_user("technician", phone="555-0101", skills=["Phones"])

@pytest.fixture
def admin(make_user):
    return make_user("admin")

@pytest.fixture
def make_repair(client):
    def _make(owner, title="Phone - iPhone 12", description="Cracked screen"):
        response = client.post(
            "/api/repairs",
            json={"title": title, "description": description},
            headers=owner["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make

@pytest.fixture
def repair(customer, make_repair):
    return make_repair(customer)

@pytest.fixture
def claimed_repair(client, repair, technician):
    response = client.post(f"/api/repairs/{repair['_id']}/claim", headers=technician["headers"])
    assert response.status_code == 200, response.text
    return response.json()
