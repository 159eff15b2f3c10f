"""
Pytest configuration and shared test helpers for backend tests.
"""
import copy
import os

# Skip heavy server startup (MongoDB) when running under pytest.
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from unittest.mock import MagicMock, patch
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Shared TestClient fixture so tests can use in-process requests without a running server.
from fastapi.testclient import TestClient
from server import app


@pytest.fixture
def client():
    """Return a TestClient for the main FastAPI app (server:app). Use for unit-style API tests."""
    return TestClient(app)


# ---------------------------------------------------------------------------
# In-memory orders collection
# ---------------------------------------------------------------------------

def _matches(doc, query):
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, dict) and "$ne" in expected:
            if actual == expected["$ne"]:
                return False
        elif actual != expected:
            return False
    return True


def _project(doc, projection):
    out = copy.deepcopy(doc)
    if projection and projection.get("_id") == 0:
        out.pop("_id", None)
    return out


class _FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class FakeOrdersCollection:
    """Just enough of the Motor collection API for OrderStore: unique order_id,
    equality / $ne filters, $set updates."""

    def __init__(self):
        self.docs = []

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    async def insert_one(self, doc):
        if any(d["order_id"] == doc["order_id"] for d in self.docs):
            raise DuplicateKeyError(f"duplicate key: order_id {doc['order_id']}")
        doc["_id"] = f"oid-{len(self.docs)}"
        self.docs.append(copy.deepcopy(doc))
        return MagicMock(inserted_id=doc["_id"])

    async def find_one_and_update(self, query, update, projection=None, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = _project(doc, projection)
                doc.update(copy.deepcopy(update.get("$set", {})))
                return _project(doc, projection) if return_document == ReturnDocument.AFTER else before
        return None

    def find(self, query=None, projection=None):
        docs = [_project(d, projection) for d in self.docs if _matches(d, query or {})]
        return _FakeCursor(docs)


@pytest.fixture
def orders_collection():
    """Fresh in-memory orders collection wired behind database.get_db()."""
    collection = FakeOrdersCollection()
    fake_db = MagicMock()
    fake_db.orders = collection
    with patch("services.order_store.database.get_db", return_value=fake_db):
        yield collection
