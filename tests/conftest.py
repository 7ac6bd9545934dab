import os
from copy import deepcopy
from types import SimpleNamespace
from datetime import datetime, timedelta, timezone

# Configuration must be in place before core.handlers.env_handler is imported
os.environ.update({
    "SITE_URL": "https://example.com",
    "SENDER_EMAIL": "newsletter@example.com",
    "MONGO_URI": "mongodb://localhost:27017",
    "DATABASE_NAME": "portfolio_test",
    "MAILJET_API_KEY": "test-mailjet-key",
    "MAILJET_SECRET_KEY": "test-mailjet-secret",
    "UNSUBSCRIBE_SECRET_KEY": "unsubscribe-signing-secret-for-tests-0123456789",
    "ADMIN_API_KEY": "admin-key-for-tests",
    "RATELIMIT_ENABLED": "false",
    "ANONYMIZE_ON_UNSUBSCRIBE": "false",
})

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError
from fastapi.testclient import TestClient

from core.services.token_service import TokenService

SECRET = os.environ["UNSUBSCRIBE_SECRET_KEY"]
ADMIN_KEY = os.environ["ADMIN_API_KEY"]


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeCursor:
    def __init__(self, docs):
        self._docs = iter(docs)

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._docs)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory stand-in for the subset of AsyncIOMotorCollection we use."""

    def __init__(self, unique_key: str = None):
        self.docs = []
        self.unique_key = unique_key
        self.down = False

    def _check(self):
        if self.down:
            raise ServerSelectionTimeoutError("connection refused")

    def _matches(self, doc, query):
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, q) for q in value):
                    return False
            elif doc.get(key) != value:
                return False
        return True

    async def insert_one(self, doc):
        self._check()
        if self.unique_key and any(d.get(self.unique_key) == doc.get(self.unique_key) for d in self.docs):
            raise DuplicateKeyError("duplicate key")
        self.docs.append(deepcopy(doc))
        return SimpleNamespace(inserted_id=len(self.docs))

    async def find_one(self, query):
        self._check()
        for doc in self.docs:
            if self._matches(doc, query):
                return deepcopy(doc)
        return None

    def find(self, query):
        self._check()
        return FakeCursor([deepcopy(d) for d in self.docs if self._matches(d, query)])

    async def update_one(self, query, update):
        self._check()
        for doc in self.docs:
            if self._matches(doc, query):
                changes = update["$set"]
                modified = any(doc.get(k) != v for k, v in changes.items())
                doc.update(deepcopy(changes))
                return SimpleNamespace(matched_count=1, modified_count=int(modified))
        return SimpleNamespace(matched_count=0, modified_count=0)


class FakeMailjetResponse:
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class FakeMailjet:
    """Records send calls; batches listed in fail_batches get a 500."""

    def __init__(self, fail_batches=()):
        self.calls = []
        self.fail_batches = set(fail_batches)
        self.send = SimpleNamespace(create=self._create)

    def _create(self, data):
        self.calls.append(data)
        if len(self.calls) - 1 in self.fail_batches:
            return FakeMailjetResponse(500, {"ErrorMessage": "internal"})
        return FakeMailjetResponse(200, {"Messages": [{"Status": "success"} for _ in data["Messages"]]})

    @property
    def messages(self):
        return [m for call in self.calls for m in call["Messages"]]


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def token_service(clock):
    return TokenService(SECRET, "HS256", timedelta(days=30), clock)


@pytest.fixture
def db():
    return {
        "subscribers": FakeCollection(unique_key="uid"),
        "blog_posts": FakeCollection(unique_key="slug"),
    }


@pytest.fixture
def mailjet():
    return FakeMailjet()


@pytest.fixture
def client(db, token_service, mailjet):
    from app import app
    from core.routes.dependencies import get_token_service, get_email_service
    from core.services.email_service import EmailService

    app.state.db = db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_email_service] = lambda: EmailService(token_service, mailjet)
    # not entered as a context manager, so the Mongo lifespan never runs
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
