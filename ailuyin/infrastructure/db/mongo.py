"""Cliente MongoDB (pymongo) compartido por los repositorios durables."""
from __future__ import annotations

import logging
from typing import Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ailuyin.core.config import settings

_log = logging.getLogger("ailuyin.mongo")

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def _client_kwargs(uri: str) -> dict:
    # tz_aware: las fechas vuelven como UTC aware (necesario para comparar expiraciones)
    kwargs = dict(serverSelectionTimeoutMS=15000, tz_aware=True)
    if uri.startswith("mongodb+srv://") or settings.mongo_tls:
        kwargs["tlsCAFile"] = certifi.where()
        if not uri.startswith("mongodb+srv://"):
            kwargs["tls"] = True
        if settings.mongo_tls_insecure:
            kwargs["tlsAllowInvalidCertificates"] = True
        if settings.mongo_tls_allow_invalid_hostnames:
            kwargs["tlsAllowInvalidHostnames"] = True
    return kwargs


def init_mongo() -> None:
    """
    Inicializa el cliente y valida conexión (ping).
    Llamar una sola vez en el startup de FastAPI.
    """
    global _client, _db
    uri = settings.mongo_uri
    try:
        _client = MongoClient(uri, **_client_kwargs(uri))
        _client.admin.command("ping")
        _db = _client[settings.mongo_db]
        _log.info("Mongo conectado db=%s", settings.mongo_db)
    except PyMongoError as e:
        # No tumbar la app: deja _db en None y loggea
        _log.warning("Mongo no accesible: %s", e)
        _client = None
        _db = None


def get_db() -> Database:
    """
    Devuelve la referencia a la base de datos.
    Úsalo en repositorios, no en routers.
    """
    if _db is None:
        raise RuntimeError("Mongo no inicializado. Intenta más tarde.")
    return _db


def db_ready() -> bool:
    return _db is not None


def close_mongo() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
