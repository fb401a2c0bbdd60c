"""Ledger de refresh tokens.

- Guarda sólo el hash SHA-256 del token (nunca el valor en claro).
- `find_valid` ignora registros expirados aunque sigan físicamente presentes.
- `rotate` es un compare-and-swap sobre el hash actual del mismo registro: de dos
  refresh concurrentes con el mismo token, sólo uno gana.
"""
from __future__ import annotations

import hashlib
from datetime import datetime
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Protocol

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from ailuyin.core import time as clock
from ailuyin.core.exceptions import DuplicateToken
from ailuyin.infrastructure.db.schemas.refresh_token import RefreshTokenRecord

RT_COLL = "refresh_token"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class RefreshTokenRepository(Protocol):
    def create(self, token: str, user_id: str, expires_at: datetime) -> RefreshTokenRecord: ...

    def find_valid(self, token: str) -> Optional[RefreshTokenRecord]: ...

    def rotate(
        self, record: RefreshTokenRecord, new_token: str, new_expires_at: datetime
    ) -> Optional[RefreshTokenRecord]: ...

    def revoke(self, token: str) -> None: ...

    def list_for_user(self, user_id: str) -> List[RefreshTokenRecord]: ...

    def revoke_ids(self, ids: Iterable[str]) -> int: ...

    def purge_expired(self) -> int: ...


def _from_doc(doc: Dict[str, Any]) -> RefreshTokenRecord:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    for k in ("expires_at", "created_at", "updated_at"):
        if isinstance(data.get(k), datetime):
            data[k] = clock.as_utc(data[k])
    return RefreshTokenRecord(**data)


class MongoRefreshTokenRepository:
    def __init__(self, coll: Collection) -> None:
        self.coll = coll

    def create(self, token: str, user_id: str, expires_at: datetime) -> RefreshTokenRecord:
        now = clock.now_utc()
        doc = {
            "token_hash": hash_token(token),
            "user_id": user_id,
            "expires_at": clock.as_utc(expires_at),
            "created_at": now,
            "updated_at": now,
        }
        try:
            res = self.coll.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateToken()
        doc["_id"] = res.inserted_id
        return _from_doc(doc)

    def find_valid(self, token: str) -> Optional[RefreshTokenRecord]:
        doc = self.coll.find_one({"token_hash": hash_token(token), "expires_at": {"$gt": clock.now_utc()}})
        return _from_doc(doc) if doc else None

    def rotate(
        self, record: RefreshTokenRecord, new_token: str, new_expires_at: datetime
    ) -> Optional[RefreshTokenRecord]:
        now = clock.now_utc()
        try:
            doc = self.coll.find_one_and_update(
                {"_id": ObjectId(record.id), "token_hash": record.token_hash, "expires_at": {"$gt": now}},
                {"$set": {
                    "token_hash": hash_token(new_token),
                    "expires_at": clock.as_utc(new_expires_at),
                    "updated_at": now,
                }},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise DuplicateToken()
        return _from_doc(doc) if doc else None

    def revoke(self, token: str) -> None:
        self.coll.delete_one({"token_hash": hash_token(token)})

    def list_for_user(self, user_id: str) -> List[RefreshTokenRecord]:
        cur = self.coll.find(
            {"user_id": user_id, "expires_at": {"$gt": clock.now_utc()}}
        ).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
        return [_from_doc(d) for d in cur]

    def revoke_ids(self, ids: Iterable[str]) -> int:
        oids = [ObjectId(i) for i in ids]
        if not oids:
            return 0
        return self.coll.delete_many({"_id": {"$in": oids}}).deleted_count

    def purge_expired(self) -> int:
        # Normalmente lo hace el índice TTL; útil si el índice no pudo crearse
        return self.coll.delete_many({"expires_at": {"$lte": clock.now_utc()}}).deleted_count


class InMemoryRefreshTokenRepository:
    def __init__(self) -> None:
        self._records: Dict[str, RefreshTokenRecord] = {}
        self._by_hash: Dict[str, str] = {}
        self._lock = Lock()

    def create(self, token: str, user_id: str, expires_at: datetime) -> RefreshTokenRecord:
        now = clock.now_utc()
        token_hash = hash_token(token)
        with self._lock:
            if token_hash in self._by_hash:
                raise DuplicateToken()
            rec = RefreshTokenRecord(
                id=str(ObjectId()),
                token_hash=token_hash,
                user_id=user_id,
                expires_at=clock.as_utc(expires_at),
                created_at=now,
                updated_at=now,
            )
            self._records[rec.id] = rec
            self._by_hash[token_hash] = rec.id
        return rec

    def find_valid(self, token: str) -> Optional[RefreshTokenRecord]:
        with self._lock:
            rec_id = self._by_hash.get(hash_token(token))
            rec = self._records.get(rec_id) if rec_id else None
        if rec is None or rec.expires_at <= clock.now_utc():
            return None
        return rec

    def rotate(
        self, record: RefreshTokenRecord, new_token: str, new_expires_at: datetime
    ) -> Optional[RefreshTokenRecord]:
        now = clock.now_utc()
        new_hash = hash_token(new_token)
        with self._lock:
            current = self._records.get(record.id)
            if current is None or current.token_hash != record.token_hash or current.expires_at <= now:
                return None
            if new_hash in self._by_hash:
                raise DuplicateToken()
            updated = current.model_copy(update={
                "token_hash": new_hash,
                "expires_at": clock.as_utc(new_expires_at),
                "updated_at": now,
            })
            del self._by_hash[current.token_hash]
            self._by_hash[new_hash] = updated.id
            self._records[updated.id] = updated
        return updated

    def revoke(self, token: str) -> None:
        with self._lock:
            rec_id = self._by_hash.pop(hash_token(token), None)
            if rec_id:
                self._records.pop(rec_id, None)

    def list_for_user(self, user_id: str) -> List[RefreshTokenRecord]:
        now = clock.now_utc()
        with self._lock:
            recs = [r for r in self._records.values() if r.user_id == user_id and r.expires_at > now]
        return sorted(recs, key=lambda r: r.created_at)

    def revoke_ids(self, ids: Iterable[str]) -> int:
        n = 0
        with self._lock:
            for rec_id in ids:
                rec = self._records.pop(rec_id, None)
                if rec:
                    self._by_hash.pop(rec.token_hash, None)
                    n += 1
        return n

    def purge_expired(self) -> int:
        now = clock.now_utc()
        with self._lock:
            expired = [r for r in self._records.values() if r.expires_at <= now]
            for rec in expired:
                self._records.pop(rec.id, None)
                self._by_hash.pop(rec.token_hash, None)
        return len(expired)
