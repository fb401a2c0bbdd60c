from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ailuyin.core.config import settings
from ailuyin.main import create_app

from conftest import API, PASSWORD, bearer, post_refresh, refresh_cookie, register


def test_register_returns_access_token_and_cookie(client: TestClient) -> None:
    r = register(client, nickname="Ana")
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Registro exitoso"
    assert body["accessToken"]
    assert body["user"]["email"] == "ana@mail.com"
    assert body["user"]["nickname"] == "Ana"
    assert "_id" in body["user"]
    assert "password_hash" not in body["user"]
    # el refresh token nunca viaja en el JSON
    assert "refreshToken" not in body
    assert refresh_cookie(r) not in r.text


def test_refresh_cookie_attributes(client: TestClient) -> None:
    r = register(client)
    raw = r.headers["set-cookie"].lower()
    assert "httponly" in raw
    assert "samesite=strict" in raw
    assert "path=/" in raw
    assert f"max-age={7 * 24 * 3600}" in raw
    assert "; secure" not in raw


def test_cookie_is_secure_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "cookie_secure", None)
    monkeypatch.setattr(settings, "environment", "production")
    with TestClient(create_app()) as c:
        r = register(c)
    assert "; secure" in r.headers["set-cookie"].lower()


def test_register_validation_errors(client: TestClient) -> None:
    r = register(client, email="bad", password="abc")
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in body["errors"]}
    assert fields == {"email", "password"}


def test_register_missing_fields(client: TestClient) -> None:
    r = client.post(f"{API}/auth/register", json={"email": "ana@mail.com"})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_register_email_taken(client: TestClient) -> None:
    assert register(client).status_code == 201
    r = register(client, email="ANA@mail.com")
    assert r.status_code == 400
    assert r.json()["code"] == "EMAIL_TAKEN"


def test_login_errors_are_identical(client: TestClient) -> None:
    register(client)
    wrong = client.post(f"{API}/auth/login", json={"email": "ana@mail.com", "password": "Nope12345"})
    unknown = client.post(f"{API}/auth/login", json={"email": "otro@mail.com", "password": PASSWORD})
    assert wrong.status_code == unknown.status_code == 401
    strip = lambda b: {k: v for k, v in b.items() if k != "request_id"}  # noqa: E731
    assert strip(wrong.json()) == strip(unknown.json())
    assert wrong.json()["code"] == "INVALID_CREDENTIALS"


def test_login_rate_limit(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "login_rate_per_min", 2)
    payload = {"email": "ana@mail.com", "password": PASSWORD}
    assert client.post(f"{API}/auth/login", json=payload).status_code == 401
    assert client.post(f"{API}/auth/login", json=payload).status_code == 401
    r = client.post(f"{API}/auth/login", json=payload)
    assert r.status_code == 429
    assert r.json()["code"] == "RATE_LIMITED"


def test_end_to_end_session(client: TestClient, frozen_clock) -> None:
    r = register(client)
    r = client.post(f"{API}/auth/login", json={"email": "ana@mail.com", "password": PASSWORD})
    assert r.status_code == 200
    access = r.json()["accessToken"]
    r1 = refresh_cookie(r)

    me = client.get(f"{API}/auth/me", headers=bearer(access))
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "ana@mail.com"

    frozen_clock.advance(minutes=16)
    expired = client.get(f"{API}/auth/me", headers=bearer(access))
    assert expired.status_code == 401
    assert expired.json()["code"] == "TOKEN_EXPIRED"

    r = post_refresh(client, r1)
    assert r.status_code == 200
    access2 = r.json()["accessToken"]
    r2 = refresh_cookie(r)
    assert r2 and r2 != r1
    assert "refreshToken" not in r.json()

    assert client.get(f"{API}/auth/me", headers=bearer(access2)).status_code == 200

    # el valor rotado ya no sirve
    stale = post_refresh(client, r1)
    assert stale.status_code == 401
    assert stale.json()["code"] == "INVALID_OR_EXPIRED_TOKEN"

    client.cookies.clear()
    out = client.post(f"{API}/auth/logout", headers={"Cookie": f"refreshToken={r2}"})
    assert out.status_code == 200
    assert refresh_cookie(out) == ""

    assert post_refresh(client, r2).status_code == 401


def test_refresh_without_cookie(client: TestClient) -> None:
    r = post_refresh(client, None)
    assert r.status_code == 401
    assert r.json()["code"] == "MISSING_TOKEN"


def test_refresh_after_seven_days(client: TestClient, frozen_clock) -> None:
    tok = refresh_cookie(register(client))
    frozen_clock.advance(days=7)
    r = post_refresh(client, tok)
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_OR_EXPIRED_TOKEN"


def test_logout_twice_and_without_cookie(client: TestClient) -> None:
    tok = refresh_cookie(register(client))
    client.cookies.clear()
    for _ in range(2):
        r = client.post(f"{API}/auth/logout", headers={"Cookie": f"refreshToken={tok}"})
        assert r.status_code == 200
        assert r.json() == {"message": "Sesión cerrada"}
    client.cookies.clear()
    assert client.post(f"{API}/auth/logout").status_code == 200


def test_logout_succeeds_without_database() -> None:
    # backend mongo sin inicializar: el logout igual responde 200
    app = create_app()
    app.state.repos = None
    c = TestClient(app)
    r = c.post(f"{API}/auth/logout", headers={"Cookie": "refreshToken=abc"})
    assert r.status_code == 200


def test_me_requires_bearer(client: TestClient) -> None:
    r = client.get(f"{API}/auth/me")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHENTICATED"

    r = client.get(f"{API}/auth/me", headers={"Authorization": "Token abc"})
    assert r.json()["code"] == "UNAUTHENTICATED"


def test_me_with_invalid_token(client: TestClient) -> None:
    r = client.get(f"{API}/auth/me", headers=bearer("not.a.jwt"))
    assert r.status_code == 401
    assert r.json()["code"] == "TOKEN_INVALID"


def test_me_for_deleted_user(client: TestClient, app) -> None:
    access = register(client).json()["accessToken"]
    app.state.repos.users._users.clear()
    app.state.repos.users._by_email.clear()
    r = client.get(f"{API}/auth/me", headers=bearer(access))
    assert r.status_code == 401
    assert r.json()["code"] == "USER_NOT_FOUND"


def test_error_bodies_carry_request_id(client: TestClient) -> None:
    r = client.get(f"{API}/auth/me", headers={"X-Request-ID": "req-123"})
    assert r.headers["x-request-id"] == "req-123"
    assert r.json()["request_id"] == "req-123"


def test_data_routes_without_database() -> None:
    app = create_app()
    app.state.repos = None
    c = TestClient(app)
    r = c.post(f"{API}/auth/login", json={"email": "ana@mail.com", "password": PASSWORD})
    assert r.status_code == 503
    assert r.json()["code"] == "SERVICE_UNAVAILABLE"


def test_access_token_lifetime_is_fifteen_minutes(client: TestClient, frozen_clock) -> None:
    access = register(client).json()["accessToken"]
    frozen_clock.advance(minutes=15, seconds=-1)
    assert client.get(f"{API}/auth/me", headers=bearer(access)).status_code == 200
    frozen_clock.advance(seconds=1)
    assert client.get(f"{API}/auth/me", headers=bearer(access)).status_code == 401


def test_register_login_refresh_sequence(client: TestClient) -> None:
    r = client.post(f"{API}/auth/register", json={"email": "a@x.com", "password": "Abcd1234"})
    assert r.status_code == 201
    assert r.json()["accessToken"]

    r = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_CREDENTIALS"

    assert post_refresh(client, None).json()["code"] == "MISSING_TOKEN"

    r = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "Abcd1234"})
    assert r.status_code == 200
    r1 = refresh_cookie(r)

    r = post_refresh(client, r1)
    assert r.status_code == 200
    assert r.json()["accessToken"]
    r2 = refresh_cookie(r)
    assert r2 != r1

    again = post_refresh(client, r1)
    assert again.status_code == 401
    assert again.json()["code"] == "INVALID_OR_EXPIRED_TOKEN"

    assert post_refresh(client, r2).status_code == 200
