"""Rutas de autenticación: registro, login, refresh, logout y perfil actual.

El refresh token viaja sólo en una cookie HttpOnly (SameSite=Strict); nunca en
el cuerpo JSON.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from pymongo.errors import PyMongoError
from typing import Optional

from ailuyin.api.deps import get_current_user, get_repos
from ailuyin.api.schemas.auth import AuthOut, LoginPayload, MeOut, MessageOut, RegisterPayload, TokenOut
from ailuyin.api.schemas.user import UserOut
from ailuyin.core import rate_limit
from ailuyin.core.config import settings
from ailuyin.core.exceptions import RateLimited, ServiceUnavailable
from ailuyin.infrastructure.db.schemas.user import UserRecord
from ailuyin.repositories.registry import Repositories
from ailuyin.services import auth_service as service

router = APIRouter(prefix="/auth", tags=["Auth"])
_log = logging.getLogger("ailuyin.auth")

REFRESH_COOKIE = settings.refresh_cookie_name


def _set_refresh_cookie(response: Response, token: str, expires_at: datetime) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        max_age=settings.refresh_token_max_age,
        expires=expires_at,
        path="/",
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        path="/",
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def _user_out(user: UserRecord) -> UserOut:
    return UserOut(**user.public())


@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar usuario",
    description="Valida email/contraseña, crea el usuario y abre sesión (refresh token en cookie).",
)
def register(payload: RegisterPayload, response: Response, repos: Repositories = Depends(get_repos)):
    issued = service.register(
        users=repos.users,
        tokens=repos.refresh_tokens,
        email=payload.email,
        password=payload.password,
        nickname=payload.nickname,
    )
    _set_refresh_cookie(response, issued.refresh_token, issued.refresh_expires_at)
    return AuthOut(message="Registro exitoso", user=_user_out(issued.user), access_token=issued.access_token)


@router.post(
    "/login",
    response_model=AuthOut,
    summary="Login con email y contraseña",
    description="Emite access token (JSON) y refresh token (cookie).",
)
def login(payload: LoginPayload, request: Request, response: Response, repos: Repositories = Depends(get_repos)):
    # Rate limit por IP
    ip = request.client.host if request.client else ""
    if not rate_limit.allow((ip, "/auth/login"), limit=settings.login_rate_per_min, window_seconds=60):
        raise RateLimited()
    issued = service.login(
        users=repos.users,
        tokens=repos.refresh_tokens,
        email=payload.email,
        password=payload.password,
    )
    _set_refresh_cookie(response, issued.refresh_token, issued.refresh_expires_at)
    return AuthOut(message="Login exitoso", user=_user_out(issued.user), access_token=issued.access_token)


@router.post(
    "/refresh",
    response_model=TokenOut,
    summary="Rotar refresh token",
    description="Lee el refresh token de la cookie, lo rota y emite un nuevo access token.",
)
def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    repos: Repositories = Depends(get_repos),
):
    rotated = service.refresh(tokens=repos.refresh_tokens, refresh_token=refresh_token)
    _set_refresh_cookie(response, rotated.refresh_token, rotated.refresh_expires_at)
    return TokenOut(access_token=rotated.access_token)


@router.post(
    "/logout",
    response_model=MessageOut,
    summary="Cerrar sesión",
    description="Revoca el refresh token actual (si existe) y limpia la cookie. Nunca falla.",
)
def logout(
    request: Request,
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
):
    try:
        repos = get_repos(request)
        service.logout(tokens=repos.refresh_tokens, refresh_token=refresh_token)
    except (ServiceUnavailable, PyMongoError) as e:
        # Limpieza best-effort: la cookie se borra igual y el registro expira solo
        _log.warning("logout sin revocar refresh token: %s", e)
    _clear_refresh_cookie(response)
    return MessageOut(message="Sesión cerrada")


@router.get(
    "/me",
    response_model=MeOut,
    summary="Usuario actual",
    description="Devuelve los campos públicos del usuario autenticado.",
)
def me(user: UserRecord = Depends(get_current_user)):
    return MeOut(user=_user_out(user))
