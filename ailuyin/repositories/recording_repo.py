"""Repo de la colección `recording` (metadatos de grabaciones por usuario)."""
from __future__ import annotations

from threading import Lock
from typing import Any, Dict, List, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from ailuyin.core import time as clock
from ailuyin.core.exceptions import ValidationError
from ailuyin.infrastructure.db.schemas.recording import RecordingRecord

RECORDING_COLL = "recording"

_DUPLICATE = [{"field": "recordingId", "message": "recordingId ya existe"}]


class RecordingRepository(Protocol):
    def insert(self, user_id: str, data: Dict[str, Any]) -> RecordingRecord: ...

    def list_for_user(self, user_id: str, *, skip: int, limit: int) -> List[RecordingRecord]: ...

    def count_for_user(self, user_id: str) -> int: ...

    def get(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]: ...

    def update(self, user_id: str, recording_id: str, fields: Dict[str, Any]) -> Optional[RecordingRecord]: ...

    def delete(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]: ...


def _oid(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _from_doc(doc: Dict[str, Any]) -> RecordingRecord:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return RecordingRecord(**data)


class MongoRecordingRepository:
    def __init__(self, coll: Collection) -> None:
        self.coll = coll

    def insert(self, user_id: str, data: Dict[str, Any]) -> RecordingRecord:
        now = clock.now_utc()
        doc = {**data, "user_id": user_id, "created_at": now, "updated_at": now}
        try:
            res = self.coll.insert_one(doc)
        except DuplicateKeyError:
            raise ValidationError(_DUPLICATE)
        doc["_id"] = res.inserted_id
        return _from_doc(doc)

    def list_for_user(self, user_id: str, *, skip: int, limit: int) -> List[RecordingRecord]:
        cur = self.coll.find({"user_id": user_id}).sort("created_at", DESCENDING).skip(skip).limit(limit)
        return [_from_doc(d) for d in cur]

    def count_for_user(self, user_id: str) -> int:
        return self.coll.count_documents({"user_id": user_id})

    def get(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]:
        oid = _oid(recording_id)
        if oid is None:
            return None
        doc = self.coll.find_one({"_id": oid, "user_id": user_id})
        return _from_doc(doc) if doc else None

    def update(self, user_id: str, recording_id: str, fields: Dict[str, Any]) -> Optional[RecordingRecord]:
        oid = _oid(recording_id)
        if oid is None:
            return None
        doc = self.coll.find_one_and_update(
            {"_id": oid, "user_id": user_id},
            {"$set": {**fields, "updated_at": clock.now_utc()}},
            return_document=ReturnDocument.AFTER,
        )
        return _from_doc(doc) if doc else None

    def delete(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]:
        oid = _oid(recording_id)
        if oid is None:
            return None
        doc = self.coll.find_one_and_delete({"_id": oid, "user_id": user_id})
        return _from_doc(doc) if doc else None


class InMemoryRecordingRepository:
    def __init__(self) -> None:
        self._items: Dict[str, RecordingRecord] = {}
        self._lock = Lock()

    def insert(self, user_id: str, data: Dict[str, Any]) -> RecordingRecord:
        now = clock.now_utc()
        with self._lock:
            if any(r.recording_id == data.get("recording_id") for r in self._items.values()):
                raise ValidationError(_DUPLICATE)
            rec = RecordingRecord(id=str(ObjectId()), user_id=user_id, created_at=now, updated_at=now, **data)
            self._items[rec.id] = rec
        return rec

    def _owned(self, user_id: str) -> List[RecordingRecord]:
        return [r for r in self._items.values() if r.user_id == user_id]

    def list_for_user(self, user_id: str, *, skip: int, limit: int) -> List[RecordingRecord]:
        items = sorted(self._owned(user_id), key=lambda r: r.created_at, reverse=True)
        return items[skip:skip + limit]

    def count_for_user(self, user_id: str) -> int:
        return len(self._owned(user_id))

    def get(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]:
        rec = self._items.get(recording_id)
        return rec if rec and rec.user_id == user_id else None

    def update(self, user_id: str, recording_id: str, fields: Dict[str, Any]) -> Optional[RecordingRecord]:
        with self._lock:
            rec = self.get(user_id, recording_id)
            if rec is None:
                return None
            rec = rec.model_copy(update={**fields, "updated_at": clock.now_utc()})
            self._items[rec.id] = rec
        return rec

    def delete(self, user_id: str, recording_id: str) -> Optional[RecordingRecord]:
        with self._lock:
            rec = self.get(user_id, recording_id)
            if rec is not None:
                del self._items[rec.id]
        return rec
