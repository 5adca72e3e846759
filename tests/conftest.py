import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app
from store import ProductStore


@pytest.fixture()
def db():
    """In-memory database handle, fresh for every test."""
    return mongomock.MongoClient()["avios_test"]


@pytest.fixture()
def store(db):
    return ProductStore(db)


@pytest.fixture()
def client(db):
    # lifespan is not entered, so no real MongoDB connection is attempted
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def shirt_payload():
    return {"name": "Shirt", "description": "Cotton shirt", "varieties": []}
