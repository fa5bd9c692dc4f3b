import os

# Settings are read when the app module is imported; provide the required ones.
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("OMDB_API_KEY", "test-omdb-key")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from bingeclub.api.deps import get_movie_lookup_client, get_movie_store
from bingeclub.core.security import get_token_verifier
from bingeclub.server import app
from bingeclub.services.movie_store import MovieStore
from tests.helpers import (
    ARRIVAL_PAYLOAD,
    INCEPTION_PAYLOAD,
    TOKENS,
    FakeLookupClient,
    FakeTokenVerifier,
)


@pytest.fixture
def mock_db():
    return AsyncMongoMockClient()["bingeclub_test"]


@pytest.fixture
async def store(mock_db):
    """Store with its indexes in place, for direct (async) store tests."""
    movie_store = MovieStore(mock_db)
    await movie_store.ensure_indexes()
    return movie_store


@pytest.fixture
def api_store(mock_db):
    return MovieStore(mock_db)


@pytest.fixture
def verifier():
    return FakeTokenVerifier(TOKENS)


@pytest.fixture
def lookup_client():
    return FakeLookupClient({"Inception": INCEPTION_PAYLOAD, "Arrival": ARRIVAL_PAYLOAD})


@pytest.fixture
def client(api_store, verifier, lookup_client):
    app.dependency_overrides[get_movie_store] = lambda: api_store
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    app.dependency_overrides[get_movie_lookup_client] = lambda: lookup_client
    yield TestClient(app)
    app.dependency_overrides.clear()
