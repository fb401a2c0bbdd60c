"""
Endpoints para `recordings`: metadatos de grabaciones del usuario autenticado.
Todas las operaciones quedan acotadas al usuario del access token.
"""
import math

from fastapi import APIRouter, Depends, Query, status

from ailuyin.api.deps import get_current_user, get_repos
from ailuyin.api.schemas.auth import MessageOut
from ailuyin.api.schemas.recording import (
    Pagination,
    RecordingCreate,
    RecordingEnvelope,
    RecordingListOut,
    RecordingOut,
    RecordingUpdate,
)
from ailuyin.core.exceptions import NotFound
from ailuyin.infrastructure.db.schemas.recording import RecordingRecord
from ailuyin.infrastructure.db.schemas.user import UserRecord
from ailuyin.repositories.registry import Repositories

router = APIRouter(prefix="/recordings", tags=["Recordings"])

_NOT_FOUND = "La grabación no existe"


def _out(rec: RecordingRecord) -> RecordingOut:
    return RecordingOut(**rec.model_dump())


@router.get("", response_model=RecordingListOut, summary="Listar grabaciones")
def list_recordings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: UserRecord = Depends(get_current_user),
    repos: Repositories = Depends(get_repos),
):
    items = repos.recordings.list_for_user(user.id, skip=(page - 1) * limit, limit=limit)
    total = repos.recordings.count_for_user(user.id)
    return RecordingListOut(
        recordings=[_out(r) for r in items],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post("", response_model=RecordingEnvelope, status_code=status.HTTP_201_CREATED, summary="Guardar grabación")
def create_recording(
    payload: RecordingCreate,
    user: UserRecord = Depends(get_current_user),
    repos: Repositories = Depends(get_repos),
):
    rec = repos.recordings.insert(user.id, payload.model_dump())
    return RecordingEnvelope(message="Grabación guardada", recording=_out(rec))


@router.get("/{recording_id}", response_model=RecordingEnvelope, summary="Detalle de grabación")
def get_recording(
    recording_id: str,
    user: UserRecord = Depends(get_current_user),
    repos: Repositories = Depends(get_repos),
):
    rec = repos.recordings.get(user.id, recording_id)
    if rec is None:
        raise NotFound(_NOT_FOUND)
    return RecordingEnvelope(message="ok", recording=_out(rec))


@router.put("/{recording_id}", response_model=RecordingEnvelope, summary="Actualizar grabación")
def update_recording(
    recording_id: str,
    payload: RecordingUpdate,
    user: UserRecord = Depends(get_current_user),
    repos: Repositories = Depends(get_repos),
):
    rec = repos.recordings.update(user.id, recording_id, payload.model_dump(exclude_unset=True))
    if rec is None:
        raise NotFound(_NOT_FOUND)
    return RecordingEnvelope(message="Grabación actualizada", recording=_out(rec))


@router.delete("/{recording_id}", response_model=MessageOut, summary="Eliminar grabación")
def delete_recording(
    recording_id: str,
    user: UserRecord = Depends(get_current_user),
    repos: Repositories = Depends(get_repos),
):
    if repos.recordings.delete(user.id, recording_id) is None:
        raise NotFound(_NOT_FOUND)
    return MessageOut(message="Grabación eliminada")
