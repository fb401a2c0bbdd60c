"""
Reloj de la aplicación (UTC, timezone-aware).

Todo el código de auth obtiene la hora desde aquí para que los tests puedan
fijar el reloj con monkeypatch sobre `now_utc`.
"""
from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Normaliza a UTC aware (Mongo puede devolver fechas naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
