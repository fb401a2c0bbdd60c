"""
Creación y verificación de tokens de sesión.

- Access token: JWT HS256 con `sub` (user id), `type="access"`, `iat`, `exp`.
  Sin estado: su validez depende sólo de la firma y la expiración embebida.
- Refresh token: valor aleatorio opaco (sin claims); el ledger lo rastrea.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt as pyjwt

from ailuyin.core import time as clock
from ailuyin.core.config import settings
from ailuyin.core.exceptions import InvalidSignature, TokenExpired, WrongTokenType

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    expires_at: datetime


def create_access_token(user_id: str, *, now: Optional[datetime] = None) -> str:
    """
    Genera un JWT válido por `access_token_expire_minutes` (15 por defecto).
    Determinista dado secreto + reloj.
    """
    now = now or clock.now_utc()
    exp = now + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str, *, now: Optional[datetime] = None) -> AccessClaims:
    """
    Valida firma, tipo y expiración. El instante exacto de `exp` ya cuenta como expirado.
    """
    try:
        # La expiración se valida abajo contra el reloj de la app
        payload = pyjwt.decode(
            token,
            key=settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp"]},
        )
    except pyjwt.PyJWTError as e:
        raise InvalidSignature() from e

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise WrongTokenType()

    now = now or clock.now_utc()
    exp = int(payload["exp"])
    if now.timestamp() >= exp:
        raise TokenExpired()

    return AccessClaims(user_id=str(payload["sub"]), expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))


def create_refresh_token() -> str:
    # 256 bits aleatorios en hex
    return secrets.token_hex(32)


def refresh_token_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or clock.now_utc()) + timedelta(days=settings.refresh_token_expire_days)
