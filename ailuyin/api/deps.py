"""
Dependencias reutilizables para routers (FastAPI Depends).

- Repositorios: los expone `app.state.repos` (Mongo o memoria según settings).
- Autenticación: extrae el Bearer token, lo valida y devuelve el usuario actual.
  Todas las rutas protegidas (auth/me, transcripción, análisis, grabaciones)
  pasan por `get_current_user`.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from ailuyin.core.exceptions import ServiceUnavailable, Unauthenticated
from ailuyin.infrastructure.db.schemas.user import UserRecord
from ailuyin.repositories.registry import Repositories
from ailuyin.services import auth_service


def get_repos(request: Request) -> Repositories:
    repos = getattr(request.app.state, "repos", None)
    if repos is None:
        raise ServiceUnavailable("Base de datos no disponible")
    return repos


def bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization:
        raise Unauthenticated()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Formato de Authorization inválido")
    return token.strip()


def get_current_user(
    request: Request,
    token: str = Depends(bearer_token),
    repos: Repositories = Depends(get_repos),
) -> UserRecord:
    user = auth_service.get_current_user(users=repos.users, access_token=token)
    request.state.user = user
    return user
