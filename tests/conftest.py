"""Pytest configuration: in-memory SQLite, no real upstream credentials."""

import json
import os
import re

#przed importem storefront.*, settings czyta env przy imporcie
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CLASSIFIER_CACHE_BACKEND"] = "memory"
os.environ["GROQ_API_KEY"] = ""
os.environ["HUGGINGFACE_API_KEY"] = ""
os.environ["CLOVER_API_TOKEN"] = ""
os.environ["CLOVER_MERCHANT_ID"] = ""
os.environ["CRON_SECRET"] = ""

import pytest
from fastapi.testclient import TestClient

from storefront.data.database import Base, SessionLocal, engine
from storefront.domain.errors import RateLimitedError, UpstreamError
import storefront.data.models  # noqa: F401


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

_PRODUCT_RE = re.compile(r'Product: "(.*)"')


def classification(**overrides) -> str:
    """Odpowiedz klasyfikatora w formacie zwracanym przez model."""
    data = {
        "cleanedName": "Jordan 4 Bred",
        "brand": "Jordan",
        "model": "4",
        "productType": "sneaker",
        "size": None,
        "colorway": "Bred",
        "condition": "new",
        "variantLabel": None,
        "confidence": "high",
    }
    data.update(overrides)
    return json.dumps(data)


class FakeProvider:
    """
    Dostawca klasyfikatora sterowany slownikiem {nazwa produktu: odpowiedz}.
    Odpowiedz moze byc tekstem albo wyjatkiem do rzucenia.
    """

    def __init__(self, name="fake", responses=None, default=None, enabled=True):
        self.name = name
        self.responses = responses or {}
        self.default = default
        self.enabled = enabled
        self.calls = []

    def complete(self, prompt: str) -> str:
        match = _PRODUCT_RE.search(prompt)
        product = match.group(1) if match else ""
        self.calls.append(product)

        answer = self.responses.get(product, self.default)
        if answer is None:
            raise UpstreamError(f"no canned answer for {product}")
        if isinstance(answer, Exception):
            raise answer
        return answer


def rate_limited_provider(name="fake"):
    return FakeProvider(name=name, default=RateLimitedError(f"{name} rate limited (HTTP 429)"))


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text or (json.dumps(payload) if payload is not None else "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """requests.Session zwracajaca zaplanowane odpowiedzi po kolei."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """Swieza baza dla kazdego testu."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def client():
    from storefront.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
