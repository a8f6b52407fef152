import time

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from presence import manager

PASSWORD = "secret123"


@pytest.fixture
def mongo(monkeypatch):
    db = mongomock.MongoClient()["trekmate_test"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def client(mongo):
    manager.clear()
    # https so the Secure auth cookie is sent back
    with TestClient(app, base_url="https://testserver") as c:
        yield c
    manager.clear()


@pytest.fixture
def make_user(client, mongo):
    def _make(name, email, password=PASSWORD, **profile):
        resp = client.post("/registerUser", json={"name": name, "email": email, "password": password, **profile})
        assert resp.status_code == 200, resp.text
        return mongo["user"].find_one({"email": email})
    return _make


@pytest.fixture
def login_as(client):
    def _login(email, password=PASSWORD):
        resp = client.post("/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp
    return _login


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False
