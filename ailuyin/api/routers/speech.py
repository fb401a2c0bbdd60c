"""
Transcripción de audio y análisis de transcripciones (requieren autenticación).

Proxy delgado hacia OpenAI: el archivo se lee en memoria con tope de tamaño y
no se guarda en disco.
"""
import io
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from ailuyin.api.deps import get_current_user
from ailuyin.api.schemas.speech import AnalyzeOut, AnalyzePayload, TranscribeOut
from ailuyin.core.config import settings
from ailuyin.core.exceptions import ValidationError
from ailuyin.infrastructure.ai import ai_service
from ailuyin.infrastructure.db.schemas.user import UserRecord

router = APIRouter(tags=["Speech"])
_log = logging.getLogger("ailuyin.speech")


@router.post("/transcribe", response_model=TranscribeOut, summary="Transcribir audio (Whisper)")
async def transcribe(audio: UploadFile = File(...), user: UserRecord = Depends(get_current_user)):
    data = await audio.read(settings.upload_max_bytes + 1)
    if not data:
        raise ValidationError([{"field": "audio", "message": "No se subió ningún archivo de audio"}])
    if len(data) > settings.upload_max_bytes:
        raise ValidationError([{"field": "audio", "message": "El archivo excede el tamaño máximo"}])

    filename = audio.filename or ""
    if "." not in filename:
        # Whisper infiere el formato por la extensión
        ext = (audio.content_type or "audio/webm").split("/")[-1].split(";")[0] or "webm"
        filename = f"recording.{ext}"

    _log.info("transcribe user_id=%s bytes=%s filename=%s", user.id, len(data), filename)
    text = await run_in_threadpool(ai_service.transcribe_audio, io.BytesIO(data), filename)
    return TranscribeOut(text=text)


@router.post("/analyze", response_model=AnalyzeOut, summary="Analizar transcripción")
def analyze(payload: AnalyzePayload, user: UserRecord = Depends(get_current_user)):
    scenario = payload.scenario or payload.analysis_type or "general"
    if scenario not in ai_service.SCENARIOS:
        scenario = "general"
    _log.info("analyze user_id=%s scenario=%s chars=%s", user.id, scenario, len(payload.transcript))
    data = ai_service.analyze_transcript(
        payload.transcript, scenario=scenario, model=payload.model, prompt=payload.prompt
    )
    return AnalyzeOut(data=data, scenario=scenario)
