import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from rdms import mongo_store


class CountingClient:
    created = 0
    guard = threading.Lock()

    def __init__(self, uri):
        with CountingClient.guard:
            CountingClient.created += 1
        self.uri = uri


class TestClientSetup:
    def setup_method(self):
        CountingClient.created = 0

    def test_single_client_across_threads(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
        monkeypatch.setattr(mongo_store, "MongoClient", CountingClient)
        monkeypatch.setattr(mongo_store, "_client", None)

        with ThreadPoolExecutor(max_workers=8) as pool:
            clients = list(pool.map(lambda _: mongo_store._mongo_client(), range(32)))

        assert CountingClient.created == 1
        assert all(c is clients[0] for c in clients)

    def test_missing_uri(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        monkeypatch.setattr(mongo_store, "_client", None)
        with pytest.raises(mongo_store.StoreNotConfigured):
            mongo_store._mongo_client()


class TestDocuments:
    def test_missing_document(self, db):
        with pytest.raises(mongo_store.DocumentNotFound):
            mongo_store.get_document(mongo_store.DISPATCH, "5f0c0b0b0b0b0b0b0b0b0b0b")
        with pytest.raises(mongo_store.DocumentNotFound):
            mongo_store.update_document(mongo_store.DISPATCH, "nope", {"status": "running"})

    def test_next_series(self, db):
        assert mongo_store.next_series("CH", mongo_store.CHALLANS, "challan_no") == "CH0001"
        assert mongo_store.next_series("CH", mongo_store.CHALLANS, "challan_no") == "CH0002"
