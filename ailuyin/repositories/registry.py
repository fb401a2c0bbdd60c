"""Conjuntos de repositorios (memoria o Mongo); `main.py` elige según `settings.storage_backend`."""
from __future__ import annotations

from dataclasses import dataclass

from ailuyin.repositories.recording_repo import (
    RECORDING_COLL,
    InMemoryRecordingRepository,
    MongoRecordingRepository,
    RecordingRepository,
)
from ailuyin.repositories.refresh_token_repo import (
    RT_COLL,
    InMemoryRefreshTokenRepository,
    MongoRefreshTokenRepository,
    RefreshTokenRepository,
)
from ailuyin.repositories.user_repo import (
    USER_COLL,
    InMemoryUserRepository,
    MongoUserRepository,
    UserRepository,
)


@dataclass
class Repositories:
    users: UserRepository
    refresh_tokens: RefreshTokenRepository
    recordings: RecordingRepository


def in_memory_repositories() -> Repositories:
    return Repositories(
        users=InMemoryUserRepository(),
        refresh_tokens=InMemoryRefreshTokenRepository(),
        recordings=InMemoryRecordingRepository(),
    )


def mongo_repositories() -> Repositories:
    # Import diferido: el backend en memoria no necesita conexión
    from ailuyin.infrastructure.db.mongo import get_db

    db = get_db()
    return Repositories(
        users=MongoUserRepository(db[USER_COLL]),
        refresh_tokens=MongoRefreshTokenRepository(db[RT_COLL]),
        recordings=MongoRecordingRepository(db[RECORDING_COLL]),
    )
