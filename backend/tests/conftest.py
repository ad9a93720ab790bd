"""
Pytest configuration and shared test helpers for backend tests.
"""
import copy
import os

# Skip heavy server startup (MongoDB) when running under pytest.
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from pymongo.errors import DuplicateKeyError
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from server import app
from auth import create_access_token, hash_password
from dependencies import get_db


# ============================================================================
# In-memory async store (subset of the Motor collection API the app uses)
# ============================================================================

UNIQUE_KEYS = {
    "users": ("user_id", "email"),
    "portfolios": ("portfolio_id", "owner_id"),
}


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


def _project(doc, projection):
    if doc is None:
        return None
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        result = {k: doc[k] for k in included if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            result["_id"] = doc["_id"]
        return result
    for key, value in projection.items():
        if not value:
            doc.pop(key, None)
    return doc


def _sort_key(field):
    return lambda doc: (doc.get(field) is None, doc.get(field))


def _apply_sort(docs, sort):
    for field, direction in reversed(sort or []):
        docs = sorted(docs, key=_sort_key(field), reverse=direction < 0)
    return docs


class _Result:
    def __init__(self, matched_count=0, modified_count=0, deleted_count=0, inserted_id=None):
        self.matched_count = matched_count
        self.modified_count = modified_count
        self.deleted_count = deleted_count
        self.inserted_id = inserted_id


class FakeCursor:
    def __init__(self, docs, projection=None):
        self._docs = docs
        self._projection = projection
        self._sort = []
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        self._sort = list(key) if isinstance(key, list) else [(key, direction)]
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = _apply_sort(self._docs, self._sort)[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        if length:
            docs = docs[:length]
        return [_project(d, self._projection) for d in docs]


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = []
        self._next_id = 1

    def _check_unique(self, doc, ignore=None):
        for key in UNIQUE_KEYS.get(self.name, ()):
            if key not in doc:
                continue
            for other in self.docs:
                if other is not ignore and other.get(key) == doc[key]:
                    raise DuplicateKeyError(f"E11000 duplicate key error {self.name}.{key}", 11000)

    def _apply_update(self, doc, update):
        candidate = copy.deepcopy(doc)
        candidate.update(copy.deepcopy(update.get("$set", {})))
        for key, amount in update.get("$inc", {}).items():
            candidate[key] = candidate.get(key, 0) + amount
        self._check_unique(candidate, ignore=doc)
        doc.clear()
        doc.update(candidate)

    async def find_one(self, query=None, projection=None, sort=None, **kwargs):
        docs = _apply_sort([d for d in self.docs if _matches(d, query or {})], sort)
        return _project(docs[0], projection) if docs else None

    def find(self, query=None, projection=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})], projection)

    def seed(self, doc):
        """Insert without awaiting, for test setup outside an event loop."""
        self._check_unique(doc)
        stored = copy.deepcopy(doc)
        stored["_id"] = self._next_id
        self._next_id += 1
        self.docs.append(stored)
        return stored["_id"]

    def get(self, query):
        """First matching document (a copy), or None."""
        docs = [d for d in self.docs if _matches(d, query)]
        return copy.deepcopy(docs[0]) if docs else None

    async def insert_one(self, doc):
        return _Result(inserted_id=self.seed(doc))

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                self._apply_update(doc, update)
                return _Result(matched_count=1, modified_count=1)
        return _Result()

    async def find_one_and_update(self, query, update, projection=None, return_document=False, **kwargs):
        for doc in self.docs:
            if _matches(doc, query):
                before = _project(doc, projection)
                self._apply_update(doc, update)
                return _project(doc, projection) if return_document else before
        return None

    async def delete_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return _Result(deleted_count=1)
        return _Result()

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return _Result(deleted_count=before - len(self.docs))

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])


class FakeDB:
    """Attribute/item access returns a lazily created FakeCollection."""

    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def client(fake_db):
    """Return a TestClient for the main FastAPI app (server:app) backed by the in-memory store."""
    app.dependency_overrides[get_db] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(fake_db):
    """Insert a user and return (user_doc, auth_headers)."""
    def _make(email="owner@example.com", plan="free", role="user", user_id=None):
        doc = {
            "user_id": user_id or f"user-{email.split('@')[0]}",
            "email": email,
            "full_name": "Test Owner",
            "password_hash": hash_password("Password123"),
            "role": role,
            "plan": plan,
            "bio": None,
            "avatar_url": None,
            "created_at": "2026-01-01T00:00:00+00:00",
            "last_login_at": None,
        }
        fake_db.users.seed(doc)
        token = create_access_token({"user_id": doc["user_id"], "email": email, "role": role})
        return doc, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def mock_llm():
    """LLM handle whose chat() is an AsyncMock; set return_value or side_effect per test."""
    from unittest.mock import AsyncMock
    llm = MagicMock()
    llm.chat = AsyncMock(return_value="Generated text")
    llm.available = True
    return llm
