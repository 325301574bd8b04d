import os

# cheap hashes and an empty store unless a test seeds one
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient

import services
from database import Database
from main import create_app


@pytest.fixture
def db():
    return Database(seed=False)


@pytest.fixture
def seeded_db():
    return Database()


@pytest.fixture
def brand(db):
    user, _ = services.register(db, "Acme", "b@x.com", "pw", "brand")
    return user


@pytest.fixture
def other_brand(db):
    user, _ = services.register(db, "Globex", "g@x.com", "pw", "brand")
    return user


@pytest.fixture
def creator(db):
    user, _ = services.register(
        db, "Tech Creator", "c@x.com", "pw", "creator",
        {"niche": "Tech", "ageDistribution": {"19-24": 10, "25-34": 30}},
    )
    return user


@pytest.fixture
def client():
    app = create_app(db=Database(seed=False))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    def _register(email, role, name="Someone", password="pw", **profile):
        resp = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password, "role": role, "profile": profile},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}
    return _register
