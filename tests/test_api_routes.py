"""
tests/test_api_routes.py -- Integration tests for the auth, city and hotel routes.

These tests exercise the full stack: FastAPI routing -> bearer dependency ->
AuthService/CityService -> result envelope serialization. Unit testing the
route functions alone would miss dependency injection, status mapping, and
the Cache-Control header on token responses.

The api_client fixture is module-scoped, so every test registers its own
username to stay independent of ordering.

Coverage:
  - Register/login/refresh/logout/change-password/profile over HTTP
  - 401 for bad credentials, missing bearer token, reused refresh token
  - City paging query params and auth on writes
  - Hotel CRUD, per-city listing, 503 on a locked database
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from core.paging import MAX_PAGE

PASSWORD = "Secret123"


def _register(client: TestClient, username: str) -> dict:
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "first_name": "Test",
            "last_name": "User",
        },
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def _bearer(session: dict) -> dict:
    return {"Authorization": f"Bearer {session['access_token']}"}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuthRoutes:
    def test_register_returns_envelope_and_no_store(self, api_client: TestClient) -> None:
        resp = api_client.post(
            "/api/v1/auth/register",
            json={
                "username": "reg_user",
                "email": "reg_user@example.com",
                "password": PASSWORD,
                "confirm_password": PASSWORD,
                "first_name": "Reg",
                "last_name": "User",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        body = resp.json()
        assert body["is_success"] is True
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["user"]["username"] == "reg_user"
        assert "hashed_password" not in body["data"]["user"]

    def test_register_validation_failure_is_400(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/register", json={"username": "x"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["is_success"] is False
        assert body["code"] == "validation_error"
        assert body["errors"]

    def test_login_success(self, api_client: TestClient) -> None:
        _register(api_client, "login_ok")
        resp = api_client.post("/api/v1/auth/login", json={"username": "LOGIN_OK", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["last_login"] is not None

    def test_login_failures_share_status_and_body(self, api_client: TestClient) -> None:
        _register(api_client, "login_bad")
        wrong = api_client.post("/api/v1/auth/login", json={"username": "login_bad", "password": "Wrong123"})
        unknown = api_client.post("/api/v1/auth/login", json={"username": "no_such_user", "password": "Wrong123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()

    def test_refresh_rotates_and_old_token_is_rejected(self, api_client: TestClient) -> None:
        session = _register(api_client, "refresher")
        body = {"access_token": session["access_token"], "refresh_token": session["refresh_token"]}

        first = api_client.post("/api/v1/auth/refresh", json=body)
        assert first.status_code == 200
        assert first.json()["data"]["refresh_token"] != session["refresh_token"]

        replay = api_client.post("/api/v1/auth/refresh", json=body)
        assert replay.status_code == 401
        assert replay.json()["code"] == "invalid_refresh_token"

    def test_refresh_with_garbage_access_token(self, api_client: TestClient) -> None:
        session = _register(api_client, "garbage_at")
        resp = api_client.post(
            "/api/v1/auth/refresh",
            json={"access_token": "garbage", "refresh_token": session["refresh_token"]},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"

    def test_profile_requires_bearer(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/profile")
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_profile_rejects_bad_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_profile_with_bearer(self, api_client: TestClient) -> None:
        session = _register(api_client, "profiled")
        resp = api_client.get("/api/v1/auth/profile", headers=_bearer(session))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "profiled@example.com"

    def test_logout_revokes_refresh_token(self, api_client: TestClient) -> None:
        session = _register(api_client, "leaver")
        assert api_client.post("/api/v1/auth/logout", headers=_bearer(session)).status_code == 200
        assert api_client.post("/api/v1/auth/logout", headers=_bearer(session)).status_code == 200

        resp = api_client.post(
            "/api/v1/auth/refresh",
            json={"access_token": session["access_token"], "refresh_token": session["refresh_token"]},
        )
        assert resp.status_code == 401

    def test_change_password(self, api_client: TestClient) -> None:
        session = _register(api_client, "changer")
        resp = api_client.post(
            "/api/v1/auth/change-password",
            headers=_bearer(session),
            json={"current_password": PASSWORD, "new_password": "Better456", "confirm_new_password": "Better456"},
        )
        assert resp.status_code == 200

        old = api_client.post("/api/v1/auth/login", json={"username": "changer", "password": PASSWORD})
        new = api_client.post("/api/v1/auth/login", json={"username": "changer", "password": "Better456"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, api_client: TestClient) -> None:
        session = _register(api_client, "changer_bad")
        resp = api_client.post(
            "/api/v1/auth/change-password",
            headers=_bearer(session),
            json={"current_password": "Wrong123", "new_password": "Better456", "confirm_new_password": "Better456"},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_credentials"

    def test_password_whitespace_is_kept_exactly(self, api_client: TestClient) -> None:
        password = "Secret123 "
        resp = api_client.post(
            "/api/v1/auth/register",
            json={
                "username": "spacey",
                "email": "spacey@example.com",
                "password": password,
                "confirm_password": password,
                "first_name": "Space",
                "last_name": "User",
            },
        )
        assert resp.status_code == 200, resp.text

        same = api_client.post("/api/v1/auth/login", json={"username": "spacey", "password": password})
        trimmed = api_client.post("/api/v1/auth/login", json={"username": "spacey", "password": "Secret123"})
        assert same.status_code == 200
        assert trimmed.status_code == 401


# ---------------------------------------------------------------------------
# Cities
# ---------------------------------------------------------------------------


class TestCityRoutes:
    def test_create_requires_auth(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/cities", json={"name": "Nowhere", "population": 1})
        assert resp.status_code == 401

    def test_crud_and_paging(self, api_client: TestClient) -> None:
        headers = _bearer(_register(api_client, "city_admin"))
        created_ids = []
        for name, population in [("Ankara", 5_700_000), ("Istanbul", 15_000_000), ("Izmir", 4_400_000)]:
            resp = api_client.post("/api/v1/cities", headers=headers, json={"name": name, "population": population})
            assert resp.status_code == 201, resp.text
            created_ids.append(resp.json()["data"]["id"])

        resp = api_client.get(
            "/api/v1/cities",
            params={"page": 1, "pageSize": 2, "sortBy": "population", "sortDescending": "true"},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [c["name"] for c in data["items"]] == ["Istanbul", "Ankara"]
        assert data["pagination"]["total_records"] == 3
        assert data["pagination"]["total_pages"] == 2
        assert data["pagination"]["has_next"] is True

        resp = api_client.get("/api/v1/cities", params={"search": "iz"})
        assert [c["name"] for c in resp.json()["data"]["items"]] == ["Izmir"]

        resp = api_client.put(
            f"/api/v1/cities/{created_ids[2]}", headers=headers, json={"name": "Izmir", "population": 4_500_000}
        )
        assert resp.status_code == 200
        assert api_client.get(f"/api/v1/cities/{created_ids[2]}").json()["data"]["population"] == 4_500_000

        assert api_client.delete(f"/api/v1/cities/{created_ids[2]}", headers=headers).status_code == 200
        assert api_client.get(f"/api/v1/cities/{created_ids[2]}").status_code == 404
        assert len(api_client.get("/api/v1/cities/all").json()["data"]) == 2

    def test_out_of_range_paging_is_clamped_not_rejected(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/cities", params={"page": -5, "pageSize": 1000, "sortBy": "bogus"})
        assert resp.status_code == 200
        pagination = resp.json()["data"]["pagination"]
        assert pagination["current_page"] == 1
        assert pagination["page_size"] == 10

    def test_create_validation_failure_is_400(self, api_client: TestClient) -> None:
        headers = _bearer(_register(api_client, "city_bad"))
        resp = api_client.post("/api/v1/cities", headers=headers, json={"name": "X", "population": 0})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_delete_missing_city_is_404(self, api_client: TestClient) -> None:
        headers = _bearer(_register(api_client, "city_del"))
        assert api_client.delete("/api/v1/cities/99999", headers=headers).status_code == 404

    def test_huge_page_is_clamped(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/cities", params={"page": 10**18, "pageSize": 10})
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["pagination"]["current_page"] == MAX_PAGE
        assert data["items"] == []

    def test_locked_database_is_503(self, api_client: TestClient, monkeypatch) -> None:
        def locked(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(api_client.app.state.city_service.store, "get_paged", locked)
        resp = api_client.get("/api/v1/cities", params={"search": "uncached"})
        assert resp.status_code == 503
        assert resp.json()["code"] == "unavailable"


# ---------------------------------------------------------------------------
# Hotels
# ---------------------------------------------------------------------------


class TestHotelRoutes:
    def test_create_requires_auth(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/hotels", json={"name": "Grand Hotel", "stars": 4, "city_id": 1})
        assert resp.status_code == 401

    def test_crud_and_city_listing(self, api_client: TestClient) -> None:
        headers = _bearer(_register(api_client, "hotel_admin"))
        city_ids = []
        for name in ("Antalya", "Trabzon"):
            resp = api_client.post("/api/v1/cities", headers=headers, json={"name": name, "population": 1_000_000})
            assert resp.status_code == 201, resp.text
            city_ids.append(resp.json()["data"]["id"])
        antalya, trabzon = city_ids

        resp = api_client.post(
            "/api/v1/hotels", headers=headers, json={"name": "Lara Beach", "stars": 5, "city_id": antalya}
        )
        assert resp.status_code == 201, resp.text
        hotel_id = resp.json()["data"]["id"]

        assert [h["name"] for h in api_client.get(f"/api/v1/cities/{antalya}/hotels").json()["data"]] == ["Lara Beach"]
        assert api_client.get(f"/api/v1/cities/{trabzon}/hotels").json()["data"] == []

        resp = api_client.put(
            f"/api/v1/hotels/{hotel_id}", headers=headers, json={"name": "Lara Beach", "stars": 4, "city_id": trabzon}
        )
        assert resp.status_code == 200
        assert api_client.get(f"/api/v1/hotels/{hotel_id}").json()["data"]["city_id"] == trabzon
        assert api_client.get(f"/api/v1/cities/{antalya}/hotels").json()["data"] == []

        assert api_client.delete(f"/api/v1/hotels/{hotel_id}", headers=headers).status_code == 200
        assert api_client.get(f"/api/v1/hotels/{hotel_id}").status_code == 404

    def test_unknown_city_is_400(self, api_client: TestClient) -> None:
        headers = _bearer(_register(api_client, "hotel_bad"))
        resp = api_client.post(
            "/api/v1/hotels", headers=headers, json={"name": "Ghost Inn", "stars": 3, "city_id": 99999}
        )
        assert resp.status_code == 400
        assert "The selected city does not exist." in resp.json()["errors"]
