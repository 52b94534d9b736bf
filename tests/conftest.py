import mongomock
import pytest
from fastapi.testclient import TestClient

from rdms import mongo_store
from rdms.api import create_app


@pytest.fixture
def db():
    database = mongomock.MongoClient()["rdms_test"]
    mongo_store.use_database(database)
    yield database
    mongo_store.use_database(None)


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return TestClient(create_app(database=db))
