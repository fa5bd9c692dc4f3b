import time

import pytest
from jose import jwt
from pymongo.errors import PyMongoError

from bingeclub.core.security import get_token_verifier
from bingeclub.server import app
from tests.helpers import ARRIVAL_PAYLOAD, INCEPTION_PAYLOAD, auth_header, save_body

U1 = auth_header("token-user-1")
U2 = auth_header("token-user-2")

PROTECTED_ROUTES = [
    ("get", "/api/movies/search?title=Inception"),
    ("post", "/api/movies/save"),
    ("get", "/api/movies/saved"),
    ("get", "/api/movies/history"),
    ("get", "/api/movies/check/tt1375666"),
    ("delete", "/api/movies/5f5b1f0e8b3e4a1d2c3b4a59"),
]


def send(client, method, url, **kwargs):
    if method == "post":
        kwargs.setdefault("json", save_body(INCEPTION_PAYLOAD))
    return getattr(client, method)(url, **kwargs)


# --- Authentication ---

@pytest.mark.parametrize("method,url", PROTECTED_ROUTES)
def test_protected_routes_require_bearer_token(client, verifier, method, url):
    response = send(client, method, url)

    assert response.status_code == 401
    assert response.json() == {"error": "Access denied. No token provided."}
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert verifier.calls == []


@pytest.mark.parametrize("method,url", PROTECTED_ROUTES)
def test_protected_routes_reject_invalid_token(client, method, url):
    response = send(client, method, url, headers=auth_header("forged"))

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token.", "message": "Invalid token: unknown test token"}


def test_non_bearer_scheme_is_rejected(client, verifier):
    response = client.get("/api/movies/saved", headers={"Authorization": "Basic dXNlcjpwYXNz"})

    assert response.status_code == 401
    assert verifier.calls == []


def test_rejected_save_does_not_touch_the_store(client):
    client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD))
    client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=auth_header("forged"))

    assert client.get("/api/movies/saved", headers=U1).json() == {"success": True, "data": []}


def test_real_jwt_verifier_accepts_signed_token(client):
    app.dependency_overrides.pop(get_token_verifier)
    token = jwt.encode(
        {"sub": "jwt-user", "aud": "authenticated", "exp": int(time.time()) + 600},
        "test-jwt-secret",
        algorithm="HS256",
    )

    response = client.get("/api/movies/saved", headers=auth_header(token))

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": []}


# --- Search ---

def test_search_returns_normalized_metadata(client):
    response = client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Inception"
    assert body["imdbID"] == "tt1375666"
    assert body["type"] == "movie"
    assert body["actors"] == INCEPTION_PAYLOAD["Actors"]
    assert body["ratings"][0] == {"Source": "Internet Movie Database", "Value": "8.8/10"}


def test_search_without_title_is_a_bad_request(client, lookup_client):
    response = client.get("/api/movies/search", params={"title": "  "}, headers=U1)

    assert response.status_code == 400
    assert response.json() == {"error": "Title parameter is required"}
    assert lookup_client.calls == []


def test_search_for_unknown_title_is_not_found(client):
    response = client.get("/api/movies/search", params={"title": "Nonexistent Film"}, headers=U1)

    assert response.status_code == 404
    assert response.json() == {"error": "Movie not found!"}


def test_search_lookup_failure_is_a_server_error(client, lookup_client, monkeypatch):
    async def broken_lookup(title):
        raise ConnectionError("OMDb unreachable")

    monkeypatch.setattr(lookup_client, "lookup", broken_lookup)

    response = client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch movie data", "message": "OMDb unreachable"}


def test_search_is_recorded_in_history(client):
    client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)
    client.get("/api/movies/search", params={"title": "Arrival"}, headers=U1)

    history = client.get("/api/movies/history", headers=U1).json()

    assert history["success"] is True
    assert [entry["query_text"] for entry in history["data"]] == ["Arrival", "Inception"]
    assert client.get("/api/movies/history", headers=U2).json()["data"] == []


def test_search_history_links_to_saved_movie(client):
    saved = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1).json()
    client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)

    [entry] = client.get("/api/movies/history", headers=U1).json()["data"]

    assert entry["referenced_movie_id"] == saved["data"]["id"]
    assert entry["movie"]["title"] == "Inception"


def test_search_succeeds_when_history_write_fails(client, api_store, monkeypatch):
    async def failing_append(*args, **kwargs):
        raise PyMongoError("history collection unavailable")

    monkeypatch.setattr(api_store, "append_search_history", failing_append)

    response = client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)

    assert response.status_code == 200
    assert response.json()["imdbID"] == "tt1375666"
    assert client.get("/api/movies/history", headers=U1).json()["data"] == []


def test_history_limit_is_applied(client):
    for _ in range(3):
        client.get("/api/movies/search", params={"title": "Inception"}, headers=U1)

    response = client.get("/api/movies/history", params={"limit": 2}, headers=U1)

    assert len(response.json()["data"]) == 2


# --- Save ---

def test_save_creates_movie_with_ratings(client):
    response = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Movie saved successfully"
    assert body["data"]["external_id"] == "tt1375666"
    assert len(body["data"]["ratings"]) == 3


def test_save_twice_returns_already_exists(client):
    first = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1).json()
    second = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1)

    assert second.status_code == 200
    assert second.json()["success"] is True
    assert second.json()["message"] == "Movie already exists"
    assert second.json()["data"]["id"] == first["data"]["id"]
    assert len(client.get("/api/movies/saved", headers=U1).json()["data"]) == 1


def test_save_accepts_external_id_field_name(client):
    body = save_body(ARRIVAL_PAYLOAD)
    body["external_id"] = body.pop("imdbID")

    response = client.post("/api/movies/save", json=body, headers=U1)

    assert response.json()["data"]["external_id"] == "tt2543164"


@pytest.mark.parametrize("missing", ["title", "imdbID"])
def test_save_requires_title_and_external_id(client, missing):
    body = save_body(INCEPTION_PAYLOAD)
    del body[missing]

    response = client.post("/api/movies/save", json=body, headers=U1)

    assert response.status_code == 400
    assert response.json() == {"error": "Title and IMDB ID are required"}
    assert client.get("/api/movies/saved", headers=U1).json()["data"] == []


def test_save_keeps_movie_when_ratings_are_malformed(client):
    body = save_body(INCEPTION_PAYLOAD)
    body["ratings"] = [{"Source": "Internet Movie Database"}, "not a rating"]

    response = client.post("/api/movies/save", json=body, headers=U1)

    assert response.status_code == 200
    assert response.json()["message"] == "Movie saved successfully"
    [movie] = client.get("/api/movies/saved", headers=U1).json()["data"]
    assert movie["external_id"] == "tt1375666"
    assert movie["ratings"] == []


def test_save_accepts_ratings_in_stored_shape(client):
    body = save_body(ARRIVAL_PAYLOAD)
    body["ratings"] = [{"source_name": "Metacritic", "value_text": "81/100"}]

    response = client.post("/api/movies/save", json=body, headers=U1)

    assert response.json()["data"]["ratings"] == [{"source_name": "Metacritic", "value_text": "81/100"}]


def test_save_coerces_numeric_title(client):
    body = save_body(ARRIVAL_PAYLOAD)
    body["title"] = 1917

    response = client.post("/api/movies/save", json=body, headers=U1)

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "1917"


def test_save_store_failure_is_a_server_error(client, api_store, monkeypatch):
    async def failing_upsert(identity):
        raise PyMongoError("write concern error")

    monkeypatch.setattr(api_store, "upsert_identity", failing_upsert)

    response = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save movie", "message": "write concern error"}


# --- List / get / delete / check ---

def test_saved_movie_can_be_fetched_by_id_only_by_owner(client):
    saved = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1).json()
    movie_id = saved["data"]["id"]

    own = client.get(f"/api/movies/saved/{movie_id}", headers=U1)
    other = client.get(f"/api/movies/saved/{movie_id}", headers=U2)

    assert own.status_code == 200
    assert own.json()["success"] is True
    assert own.json()["data"]["title"] == "Inception"
    assert len(own.json()["data"]["ratings"]) == 3
    assert other.status_code == 404
    assert other.json() == {"error": "Movie not found"}


def test_end_to_end_save_list_delete(client):
    saved = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1).json()

    listed = client.get("/api/movies/saved", headers=U1).json()["data"]
    assert [m["external_id"] for m in listed] == ["tt1375666"]

    deleted = client.delete(f"/api/movies/{saved['data']['id']}", headers=U1)
    assert deleted.json() == {"success": True, "message": "Movie deleted successfully"}

    assert client.get("/api/movies/saved", headers=U1).json()["data"] == []
    assert client.get("/api/movies/check/tt1375666", headers=U1).json() == {"success": True, "exists": False}


def test_other_users_cannot_see_or_delete_movies(client):
    saved = client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1).json()

    assert client.get("/api/movies/saved", headers=U2).json()["data"] == []
    assert client.get("/api/movies/check/tt1375666", headers=U2).json()["exists"] is False

    response = client.delete(f"/api/movies/{saved['data']['id']}", headers=U2)
    assert response.status_code == 200

    assert client.get("/api/movies/check/tt1375666", headers=U1).json()["exists"] is True
    assert len(client.get("/api/movies/saved", headers=U1).json()["data"]) == 1


def test_saved_list_is_newest_first(client):
    client.post("/api/movies/save", json=save_body(INCEPTION_PAYLOAD), headers=U1)
    client.post("/api/movies/save", json=save_body(ARRIVAL_PAYLOAD), headers=U1)

    listed = client.get("/api/movies/saved", headers=U1).json()["data"]

    assert [m["title"] for m in listed] == ["Arrival", "Inception"]


def test_check_store_failure_is_a_server_error(client, api_store, monkeypatch):
    async def failing_exists(owner_user_id, external_id):
        raise PyMongoError("connection reset")

    monkeypatch.setattr(api_store, "movie_exists", failing_exists)

    response = client.get("/api/movies/check/tt1375666", headers=U1)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to check movie existence", "message": "connection reset"}


# --- Unauthenticated surface ---

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"
    assert "timestamp" in response.json()


def test_movies_health(client):
    assert client.get("/api/movies/health").json()["service"] == "Movies API"


def test_debug_env_reports_presence_only(client):
    anonymous = client.get("/api/debug/env").json()
    signed_in = client.get("/api/debug/env", headers=U1).json()
    bad_token = client.get("/api/debug/env", headers=auth_header("forged"))

    assert anonymous["environment"]["OMDB_API_KEY"] == "Set"
    assert "test-omdb-key" not in str(anonymous)
    assert anonymous["authenticated"] is False
    assert signed_in["authenticated"] is True
    assert bad_token.status_code == 200
    assert bad_token.json()["authenticated"] is False


def test_unknown_route(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}
