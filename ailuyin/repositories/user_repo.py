"""Persistencia de usuarios (credential store).

Dos implementaciones intercambiables con la misma semántica de consulta:
Mongo (durable) y memoria (tests / desarrollo). Se eligen por configuración
en `repositories/registry.py`.
"""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any, Dict, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from ailuyin.core import time as clock
from ailuyin.core.exceptions import EmailTaken
from ailuyin.infrastructure.db.schemas.user import UserRecord

USER_COLL = "user"


class UserRepository(Protocol):
    def create(self, *, email: str, password_hash: str, nickname: str) -> UserRecord: ...

    def find_by_email(self, email: str) -> Optional[UserRecord]: ...

    def get_by_id(self, user_id: str) -> Optional[UserRecord]: ...

    def touch_last_login(self, user_id: str, at: datetime) -> None: ...


def _from_doc(doc: Dict[str, Any]) -> UserRecord:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return UserRecord(**data)


class MongoUserRepository:
    def __init__(self, coll: Collection) -> None:
        self.coll = coll

    def create(self, *, email: str, password_hash: str, nickname: str) -> UserRecord:
        now = clock.now_utc()
        doc = {
            "email": email,
            "password_hash": password_hash,
            "nickname": nickname,
            "avatar": None,
            "is_email_verified": False,
            "created_at": now,
            "updated_at": now,
            "last_login_at": None,
        }
        try:
            res = self.coll.insert_one(doc)
        except DuplicateKeyError:
            # El índice único de email es la garantía final ante registros simultáneos
            raise EmailTaken()
        doc["_id"] = res.inserted_id
        return _from_doc(doc)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        doc = self.coll.find_one({"email": email})
        return _from_doc(doc) if doc else None

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        doc = self.coll.find_one({"_id": oid})
        return _from_doc(doc) if doc else None

    def touch_last_login(self, user_id: str, at: datetime) -> None:
        self.coll.update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {"last_login_at": at, "updated_at": at}},
        )


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._users: Dict[str, UserRecord] = {}
        self._by_email: Dict[str, str] = {}
        self._lock = Lock()

    def create(self, *, email: str, password_hash: str, nickname: str) -> UserRecord:
        now = clock.now_utc()
        with self._lock:
            if email in self._by_email:
                raise EmailTaken()
            user = UserRecord(
                id=str(ObjectId()),
                email=email,
                password_hash=password_hash,
                nickname=nickname,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._by_email[email] = user.id
        return user.model_copy()

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = self._by_email.get(email)
        return self.get_by_id(user_id) if user_id else None

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def touch_last_login(self, user_id: str, at: datetime) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user:
                self._users[user_id] = user.model_copy(update={"last_login_at": at, "updated_at": at})
