"""Health y catálogo de modelos (sin auth), salidas tipadas y estables."""
from fastapi import APIRouter, status

from ailuyin.api.schemas.health import HealthOut, PingOut
from ailuyin.api.schemas.speech import ModelInfo, ModelsOut
from ailuyin.core.config import settings
from ailuyin.infrastructure.ai.ai_service import MODELS


router = APIRouter(tags=["Health"])  # no prefix to keep paths stable


@router.get("/ping", response_model=PingOut, summary="Ping básico")
def ping() -> PingOut:
    return PingOut(message="pong")


@router.get("/health", status_code=status.HTTP_200_OK, response_model=HealthOut, summary="Salud básica")
def health() -> HealthOut:
    return HealthOut(status="ok", has_api_key=settings.openai_configured, storage=settings.storage_backend)


@router.get("/models", response_model=ModelsOut, summary="Modelos de análisis disponibles")
def models() -> ModelsOut:
    return ModelsOut(models=[ModelInfo(**m) for m in MODELS], current_model=settings.openai_model)
