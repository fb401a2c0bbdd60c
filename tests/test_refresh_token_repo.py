from __future__ import annotations

from datetime import timedelta

import pytest

from ailuyin.core.exceptions import DuplicateToken
from ailuyin.repositories.refresh_token_repo import InMemoryRefreshTokenRepository, hash_token


@pytest.fixture
def ledger() -> InMemoryRefreshTokenRepository:
    return InMemoryRefreshTokenRepository()


def test_stores_hash_only(ledger, frozen_clock) -> None:
    rec = ledger.create("raw-token", "u1", frozen_clock.now + timedelta(days=7))
    assert rec.token_hash == hash_token("raw-token")
    assert "raw-token" not in rec.model_dump_json()


def test_find_valid_respects_expiry(ledger, frozen_clock) -> None:
    expires = frozen_clock.now + timedelta(days=7)
    ledger.create("t1", "u1", expires)
    assert ledger.find_valid("t1") is not None

    frozen_clock.now = expires - timedelta(seconds=1)
    assert ledger.find_valid("t1") is not None

    # el registro sigue físicamente presente pero ya no es válido
    frozen_clock.now = expires
    assert ledger.find_valid("t1") is None
    assert ledger.purge_expired() == 1
    assert ledger.purge_expired() == 0


def test_unknown_token(ledger, frozen_clock) -> None:
    assert ledger.find_valid("nope") is None


def test_duplicate_token_is_reported(ledger, frozen_clock) -> None:
    ledger.create("same", "u1", frozen_clock.now + timedelta(days=7))
    with pytest.raises(DuplicateToken):
        ledger.create("same", "u2", frozen_clock.now + timedelta(days=7))


def test_rotate_replaces_value_in_place(ledger, frozen_clock) -> None:
    rec = ledger.create("old", "u1", frozen_clock.now + timedelta(days=1))
    frozen_clock.advance(hours=1)
    new_exp = frozen_clock.now + timedelta(days=7)

    rotated = ledger.rotate(rec, "new", new_exp)

    assert rotated is not None
    assert rotated.id == rec.id
    assert rotated.expires_at == new_exp
    assert ledger.find_valid("old") is None
    assert ledger.find_valid("new").id == rec.id


def test_rotate_is_compare_and_swap(ledger, frozen_clock) -> None:
    rec = ledger.create("old", "u1", frozen_clock.now + timedelta(days=1))
    exp = frozen_clock.now + timedelta(days=7)

    assert ledger.rotate(rec, "winner", exp) is not None
    # segundo intento con el mismo registro leído antes: pierde
    assert ledger.rotate(rec, "loser", exp) is None
    assert ledger.find_valid("winner") is not None
    assert ledger.find_valid("loser") is None


def test_rotate_expired_record_fails(ledger, frozen_clock) -> None:
    rec = ledger.create("old", "u1", frozen_clock.now + timedelta(minutes=1))
    frozen_clock.advance(minutes=2)
    assert ledger.rotate(rec, "new", frozen_clock.now + timedelta(days=7)) is None


def test_revoke_is_idempotent(ledger, frozen_clock) -> None:
    ledger.create("t1", "u1", frozen_clock.now + timedelta(days=7))
    ledger.revoke("t1")
    ledger.revoke("t1")
    ledger.revoke("never-existed")
    assert ledger.find_valid("t1") is None


def test_list_and_revoke_ids(ledger, frozen_clock) -> None:
    exp = frozen_clock.now + timedelta(days=7)
    first = ledger.create("a", "u1", exp)
    frozen_clock.advance(seconds=1)
    ledger.create("b", "u1", exp)
    ledger.create("c", "u2", exp)

    live = ledger.list_for_user("u1")
    assert [r.token_hash for r in live] == [hash_token("a"), hash_token("b")]

    assert ledger.revoke_ids([first.id, "missing"]) == 1
    assert ledger.find_valid("a") is None
    assert ledger.find_valid("b") is not None
