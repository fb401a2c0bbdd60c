from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from ailuyin.core import rate_limit
from ailuyin.core import time as app_time
from ailuyin.core.config import settings
from ailuyin.repositories.registry import in_memory_repositories
from ailuyin.services import auth_service

API = "/api"
PASSWORD = "Secreto123"

_COOKIE_RE = re.compile(r"refreshToken=([^;]*)")


class FrozenClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "storage_backend", "memory")
    monkeypatch.setattr(settings, "jwt_secret", "test-secret-with-enough-length-1234")
    monkeypatch.setattr(settings, "cookie_secure", False)
    monkeypatch.setattr(settings, "max_sessions_per_user", 0)
    monkeypatch.setattr(settings, "openai_api_key", None)
    # argon2 liviano: los tests no miden costo de hash
    monkeypatch.setattr(auth_service, "ph", PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))
    monkeypatch.setattr(auth_service, "_dummy_hash", None)
    rate_limit.reset()


@pytest.fixture
def frozen_clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    fc = FrozenClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(app_time, "now_utc", fc)
    return fc


@pytest.fixture
def repos():
    return in_memory_repositories()


@pytest.fixture
def app():
    from ailuyin.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def refresh_cookie(resp) -> Optional[str]:
    """Valor de la cookie refreshToken en Set-Cookie ("" si se borró)."""
    m = _COOKIE_RE.search(resp.headers.get("set-cookie", ""))
    if m is None:
        return None
    return m.group(1).strip('"')


def register(c: TestClient, email: str = "ana@mail.com", password: str = PASSWORD, **extra):
    return c.post(f"{API}/auth/register", json={"email": email, "password": password, **extra})


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def cookie(token: str) -> dict:
    return {"Cookie": f"refreshToken={token}"}


def post_refresh(c: TestClient, token: Optional[str]):
    """POST /auth/refresh con un refresh token explícito (ignora el cookie jar)."""
    c.cookies.clear()
    return c.post(f"{API}/auth/refresh", headers=cookie(token) if token is not None else {})
