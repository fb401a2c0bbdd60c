"""
Lógica de autenticación: registro, login, refresh (con rotación), logout y
resolución del usuario actual a partir del access token.

Los repositorios se reciben como argumentos; el router decide cuáles (Mongo o
memoria) según la configuración.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

from ailuyin.core import time as clock
from ailuyin.core.config import settings
from ailuyin.core.exceptions import (
    InvalidCredentials,
    InvalidOrExpiredToken,
    MissingToken,
    Unauthenticated,
    UserNotFound,
)
from ailuyin.infrastructure.db.schemas.user import UserRecord
from ailuyin.repositories.refresh_token_repo import RefreshTokenRepository
from ailuyin.repositories.user_repo import UserRepository
from ailuyin.services import token_service
from ailuyin.services.auth_validator import validate_login, validate_registration

_log = logging.getLogger("ailuyin.auth")

ph = PasswordHasher(time_cost=2, memory_cost=51200, parallelism=2, hash_len=32, salt_len=16, type=Type.ID)

_dummy_hash: Optional[str] = None


@dataclass
class IssuedSession:
    user: UserRecord
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


@dataclass
class RefreshedSession:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def _burn_password_check(password: str) -> None:
    # Email desconocido: mismo costo que un hash real para no filtrar existencia por tiempo
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = ph.hash("ailuyin-dummy-password")
    verify_password(password, _dummy_hash)


def _enforce_session_cap(tokens: RefreshTokenRepository, user_id: str) -> None:
    cap = settings.max_sessions_per_user
    if cap <= 0:
        return
    live = tokens.list_for_user(user_id)
    excess = len(live) - cap
    if excess > 0:
        n = tokens.revoke_ids(r.id for r in live[:excess])
        _log.info("session cap user_id=%s revoked=%s", user_id, n)


def _issue_session(user: UserRecord, tokens: RefreshTokenRepository) -> IssuedSession:
    access = token_service.create_access_token(user.id)
    raw = token_service.create_refresh_token()
    expires_at = token_service.refresh_token_expiry()
    tokens.create(raw, user.id, expires_at)
    _enforce_session_cap(tokens, user.id)
    return IssuedSession(user=user, access_token=access, refresh_token=raw, refresh_expires_at=expires_at)


def register(
    *,
    users: UserRepository,
    tokens: RefreshTokenRepository,
    email: str,
    password: str,
    nickname: Optional[str] = None,
) -> IssuedSession:
    """
    Registra un usuario local y abre su primera sesión.

    - ValidationError con todas las reglas incumplidas.
    - EmailTaken si el email ya existe.
    """
    email, nickname = validate_registration(email, password, nickname)
    user = users.create(email=email, password_hash=hash_password(password), nickname=nickname)
    _log.info("register user_id=%s", user.id)
    return _issue_session(user, tokens)


def login(
    *,
    users: UserRepository,
    tokens: RefreshTokenRepository,
    email: str,
    password: str,
) -> IssuedSession:
    """Login con email+password. Mismo error para email desconocido y password incorrecto."""
    email = validate_login(email, password)
    user = users.find_by_email(email)
    if user is None:
        _burn_password_check(password)
        _log.info("login failed reason=unknown_email")
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        _log.info("login failed reason=bad_password user_id=%s", user.id)
        raise InvalidCredentials()

    now = clock.now_utc()
    users.touch_last_login(user.id, now)
    user = user.model_copy(update={"last_login_at": now, "updated_at": now})
    return _issue_session(user, tokens)


def refresh(*, tokens: RefreshTokenRepository, refresh_token: Optional[str]) -> RefreshedSession:
    """
    Valida el refresh token actual y lo rota sobre el mismo registro.
    El valor anterior queda inválido en cuanto la rotación tiene éxito.
    """
    if not refresh_token:
        raise MissingToken()
    record = tokens.find_valid(refresh_token)
    if record is None:
        raise InvalidOrExpiredToken()

    new_raw = token_service.create_refresh_token()
    rotated = tokens.rotate(record, new_raw, token_service.refresh_token_expiry())
    if rotated is None:
        # Otro refresh concurrente ganó la rotación con el mismo token
        _log.warning("refresh rotation lost race record_id=%s", record.id)
        raise InvalidOrExpiredToken()

    return RefreshedSession(
        access_token=token_service.create_access_token(rotated.user_id),
        refresh_token=new_raw,
        refresh_expires_at=rotated.expires_at,
    )


def logout(*, tokens: RefreshTokenRepository, refresh_token: Optional[str]) -> None:
    """Revoca el refresh token si viene; idempotente."""
    if refresh_token:
        tokens.revoke(refresh_token)


def get_current_user(*, users: UserRepository, access_token: Optional[str]) -> UserRecord:
    """
    Resuelve el usuario del access token. Propaga TokenExpired / InvalidToken
    del verificador para que el cliente distinga cuándo conviene refrescar.
    """
    if not access_token:
        raise Unauthenticated()
    claims = token_service.verify_access_token(access_token)
    user = users.get_by_id(claims.user_id)
    if user is None:
        raise UserNotFound()
    return user
