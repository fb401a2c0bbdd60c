"""
Bootstrap de la base Mongo: define y aplica validadores (JSON Schema) e índices.
Se ejecuta al inicio de la app para asegurar colecciones mínimas y consistencia.
No tumba la app si algo falla; deja warnings en casos no críticos.
"""
from __future__ import annotations

from typing import Any, Dict, List
import logging
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ailuyin.infrastructure.db.mongo import get_db
from ailuyin.repositories.user_repo import USER_COLL
from ailuyin.repositories.refresh_token_repo import RT_COLL
from ailuyin.repositories.recording_repo import RECORDING_COLL

_log = logging.getLogger("ailuyin.mongo.bootstrap")


def _collmod_or_create(name: str, validator: Dict[str, Any]) -> None:
    db = get_db()
    try:
        if name not in db.list_collection_names():
            db.create_collection(name, validator={"$jsonSchema": validator})
        else:
            db.command({
                "collMod": name,
                "validator": {"$jsonSchema": validator},
                "validationLevel": "moderate",
            })
    except PyMongoError as e:
        # No aborta el arranque; solo deja sin validator estricto.
        _log.warning("No se pudo aplicar validator en '%s': %s", name, e)


def _ensure_indexes(name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = get_db()[name]
    for ix in indexes:
        ix = dict(ix)
        keys = ix.pop("keys")
        try:
            coll.create_index(keys, **ix)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe con otras opciones)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


USER_VALIDATOR = {
    "bsonType": "object",
    "required": ["email", "password_hash", "nickname", "is_email_verified", "created_at", "updated_at"],
    "properties": {
        "email": {"bsonType": "string", "minLength": 3, "description": "lowercase"},
        "password_hash": {"bsonType": "string"},
        "nickname": {"bsonType": "string"},
        "avatar": {"bsonType": ["string", "null"]},
        "is_email_verified": {"bsonType": "bool"},
        "created_at": {"bsonType": "date"},
        "updated_at": {"bsonType": "date"},
        "last_login_at": {"bsonType": ["date", "null"]},
    },
}

REFRESH_TOKEN_VALIDATOR = {
    "bsonType": "object",
    "required": ["token_hash", "user_id", "expires_at", "created_at"],
    "properties": {
        "token_hash": {"bsonType": "string", "minLength": 64, "maxLength": 64},
        "user_id": {"bsonType": "string"},
        "expires_at": {"bsonType": "date"},
        "created_at": {"bsonType": "date"},
        "updated_at": {"bsonType": "date"},
    },
}

RECORDING_VALIDATOR = {
    "bsonType": "object",
    "required": ["user_id", "recording_id", "file_name", "file_path", "file_size", "created_at"],
    "properties": {
        "user_id": {"bsonType": "string"},
        "recording_id": {"bsonType": "string"},
        "file_name": {"bsonType": "string"},
        "file_path": {"bsonType": "string"},
        "file_size": {"bsonType": ["int", "long", "double"], "minimum": 0},
        "duration": {"bsonType": ["int", "long", "double", "null"]},
        "transcription": {"bsonType": ["string", "null"]},
        "analysis": {"bsonType": ["object", "null"]},
    },
}


def ensure_collections() -> None:
    """
    Garantiza colecciones, validadores e índices mínimos.
    """
    _collmod_or_create(USER_COLL, USER_VALIDATOR)
    _ensure_indexes(USER_COLL, [
        {"keys": [("email", ASCENDING)], "name": "uniq_email", "unique": True},
    ])

    _collmod_or_create(RT_COLL, REFRESH_TOKEN_VALIDATOR)
    _ensure_indexes(RT_COLL, [
        {"keys": [("token_hash", ASCENDING)], "name": "uniq_token_hash", "unique": True},
        {"keys": [("user_id", ASCENDING), ("created_at", ASCENDING)], "name": "user_sessions"},
        # Barrido nativo: Mongo elimina el documento cuando expires_at pasa
        {"keys": [("expires_at", ASCENDING)], "name": "ttl_expires_at", "expireAfterSeconds": 0},
    ])

    _collmod_or_create(RECORDING_COLL, RECORDING_VALIDATOR)
    _ensure_indexes(RECORDING_COLL, [
        {"keys": [("recording_id", ASCENDING)], "name": "uniq_recording_id", "unique": True},
        {"keys": [("user_id", ASCENDING), ("created_at", DESCENDING)], "name": "user_recent"},
    ])
    _log.info("Colecciones e índices verificados")
