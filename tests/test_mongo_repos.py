from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ailuyin.core.exceptions import DuplicateToken, EmailTaken
from ailuyin.infrastructure.db import mongo
from ailuyin.repositories.refresh_token_repo import MongoRefreshTokenRepository, hash_token
from ailuyin.repositories.user_repo import MongoUserRepository


def test_create_stores_hash(frozen_clock) -> None:
    coll = MagicMock()
    coll.insert_one.return_value.inserted_id = ObjectId()
    repo = MongoRefreshTokenRepository(coll)

    rec = repo.create("raw", "u1", frozen_clock.now + timedelta(days=7))

    doc = coll.insert_one.call_args[0][0]
    assert doc["token_hash"] == hash_token("raw")
    assert "raw" not in doc.values()
    assert rec.user_id == "u1"


def test_create_duplicate_raises(frozen_clock) -> None:
    coll = MagicMock()
    coll.insert_one.side_effect = DuplicateKeyError("dup")
    with pytest.raises(DuplicateToken):
        MongoRefreshTokenRepository(coll).create("raw", "u1", frozen_clock.now)


def test_find_valid_filters_expired(frozen_clock) -> None:
    coll = MagicMock()
    coll.find_one.return_value = None
    assert MongoRefreshTokenRepository(coll).find_valid("raw") is None
    coll.find_one.assert_called_once_with({"token_hash": hash_token("raw"), "expires_at": {"$gt": frozen_clock.now}})


def test_rotate_is_conditional_on_current_hash(frozen_clock) -> None:
    oid = ObjectId()
    coll = MagicMock()
    coll.insert_one.return_value.inserted_id = oid
    repo = MongoRefreshTokenRepository(coll)
    rec = repo.create("old", "u1", frozen_clock.now + timedelta(days=1))
    new_exp = frozen_clock.now + timedelta(days=7)
    coll.find_one_and_update.return_value = {
        "_id": oid,
        "token_hash": hash_token("new"),
        "user_id": "u1",
        "expires_at": new_exp,
        "created_at": frozen_clock.now,
        "updated_at": frozen_clock.now,
    }

    rotated = repo.rotate(rec, "new", new_exp)

    flt, update = coll.find_one_and_update.call_args[0]
    assert flt == {"_id": oid, "token_hash": hash_token("old"), "expires_at": {"$gt": frozen_clock.now}}
    assert update["$set"]["token_hash"] == hash_token("new")
    assert coll.find_one_and_update.call_args[1]["return_document"] == ReturnDocument.AFTER
    assert rotated.id == str(oid)


def test_rotate_lost_race_returns_none(frozen_clock) -> None:
    coll = MagicMock()
    coll.insert_one.return_value.inserted_id = ObjectId()
    coll.find_one_and_update.return_value = None
    repo = MongoRefreshTokenRepository(coll)
    rec = repo.create("old", "u1", frozen_clock.now + timedelta(days=1))
    assert repo.rotate(rec, "new", frozen_clock.now + timedelta(days=7)) is None


def test_user_create_duplicate_email(frozen_clock) -> None:
    coll = MagicMock()
    coll.insert_one.side_effect = DuplicateKeyError("dup")
    with pytest.raises(EmailTaken):
        MongoUserRepository(coll).create(email="ana@mail.com", password_hash="h", nickname="ana")


def test_user_get_by_invalid_id() -> None:
    coll = MagicMock()
    assert MongoUserRepository(coll).get_by_id("not-an-object-id") is None
    coll.find_one.assert_not_called()


def test_tls_kwargs_for_srv_uri() -> None:
    kwargs = mongo._client_kwargs("mongodb+srv://cluster.mongodb.net/db")
    assert kwargs["tz_aware"] is True
    assert "tlsCAFile" in kwargs
    assert "tls" not in kwargs


def test_plain_uri_has_no_tls() -> None:
    assert "tlsCAFile" not in mongo._client_kwargs("mongodb://localhost:27017")


def test_bootstrap_creates_ttl_index(monkeypatch: pytest.MonkeyPatch) -> None:
    from ailuyin.infrastructure.db import bootstrap

    db = MagicMock()
    db.list_collection_names.return_value = []
    monkeypatch.setattr(bootstrap, "get_db", lambda: db)

    bootstrap.ensure_collections()

    created = {c.kwargs["name"]: c.kwargs for c in db.__getitem__.return_value.create_index.call_args_list}
    assert created["ttl_expires_at"]["expireAfterSeconds"] == 0
    assert created["uniq_token_hash"]["unique"] is True
    assert created["uniq_email"]["unique"] is True
    assert db.create_collection.call_count == 3


def test_list_for_user_breaks_created_at_ties_by_id(frozen_clock) -> None:
    coll = MagicMock()
    coll.find.return_value.sort.return_value = []
    assert MongoRefreshTokenRepository(coll).list_for_user("u1") == []
    coll.find.return_value.sort.assert_called_once_with([("created_at", ASCENDING), ("_id", ASCENDING)])
