"""Transcripción (Whisper) y análisis estructurado de transcripciones (chat completions).

Capa delgada sobre OpenAI: los routers sólo manejan HTTP y auth.
"""
from __future__ import annotations

import json
import logging
from typing import Any, BinaryIO, Dict, List, Optional

from openai import OpenAIError

from ailuyin.core.config import settings
from ailuyin.core.exceptions import ServiceUnavailable, UpstreamError
from ailuyin.infrastructure.ai.openai_client import get_openai

_log = logging.getLogger("ailuyin.ai")

SCENARIOS = ("customer_meeting", "phone_sales", "team_meeting", "general")

MODELS: List[Dict[str, Any]] = [
    {"id": "gpt-3.5-turbo", "name": "GPT-3.5 Turbo", "description": "Rápido y económico, para análisis básicos", "cost": "$"},
    {"id": "gpt-4o-mini", "name": "GPT-4o Mini", "description": "Mejor relación costo/calidad", "cost": "$$", "recommended": True},
    {"id": "gpt-4o", "name": "GPT-4o", "description": "La mayor capacidad de análisis", "cost": "$$$"},
]

SYSTEM_PROMPT = (
    "Eres un asistente profesional que analiza grabaciones de reuniones y llamadas de negocio. "
    "Responde siempre con JSON válido siguiendo exactamente el formato pedido."
)

_BASE_INSTRUCTION = """Devuelve el análisis con este formato JSON:
{{
  "summary": "resumen detallado",
  "keyPoints": ["punto 1", "punto 2"],
  "risks": [{{"level": "high|medium|low", "title": "...", "description": "...", "suggestion": "..."}}],
  "todos": [{{"priority": "urgent|high|medium|low", "title": "...", "deadline": "(opcional)", "context": "..."}}]
}}

Transcripción:
{transcript}
"""

_SCENARIO_FOCUS = {
    "customer_meeting": (
        "Analiza desde la perspectiva de un ejecutivo de cuenta con su cliente: necesidades del cliente, "
        "interés y dudas sobre productos; riesgos de cumplimiento, de emoción del cliente y de queja; "
        "pendientes de seguimiento, materiales a preparar y ajustes a la propuesta."
    ),
    "phone_sales": (
        "Analiza como una venta telefónica: respuesta e intención del cliente, manejo de objeciones y guion; "
        "riesgos de cumplimiento del guion, aviso de grabación y declaraciones engañosas; "
        "clasificación del cliente, momento de la siguiente llamada y mejoras al guion."
    ),
    "team_meeting": (
        "Analiza como una reunión de equipo: decisiones clave, problemas y soluciones, acuerdos y desacuerdos; "
        "riesgos de ejecución, de recursos y de plazos; tareas con responsable, fechas clave y temas para la próxima reunión."
    ),
    "general": (
        "Haz un análisis general: puntos centrales, riesgos potenciales y acciones recomendadas."
    ),
}


def _require_client():
    oa = get_openai()
    if oa is None:
        raise ServiceUnavailable("OpenAI no configurado (falta OPENAI_API_KEY)")
    return oa


def transcribe_audio(fileobj: BinaryIO, filename: str) -> str:
    """Envía el audio a Whisper y devuelve el texto plano."""
    oa = _require_client()
    kwargs: Dict[str, Any] = {
        "file": (filename, fileobj),
        "model": settings.openai_transcribe_model,
        "response_format": "text",
    }
    if settings.transcribe_language:
        kwargs["language"] = settings.transcribe_language
    try:
        text = oa.audio.transcriptions.create(**kwargs)
    except OpenAIError as e:
        _log.exception("Fallo de transcripción filename=%s", filename)
        raise UpstreamError(f"Transcripción fallida: {e}") from e
    # con response_format=text el SDK devuelve str
    return str(text).strip()


def build_prompt(transcript: str, scenario: str) -> str:
    focus = _SCENARIO_FOCUS.get(scenario, _SCENARIO_FOCUS["general"])
    return _BASE_INSTRUCTION.format(transcript=transcript) + "\n" + focus


def parse_analysis(content: str) -> Dict[str, Any]:
    """Parsea el JSON del modelo; si no es JSON, usa el texto como resumen."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        _log.warning("Respuesta del modelo no es JSON; usando fallback de texto")
        return {"summary": content or "", "keyPoints": [], "risks": [], "todos": []}
    if not isinstance(data, dict):
        return {"summary": str(data), "keyPoints": [], "risks": [], "todos": []}
    data.setdefault("summary", "")
    for k in ("keyPoints", "risks", "todos"):
        data.setdefault(k, [])
    return data


def analyze_transcript(
    transcript: str,
    scenario: str = "general",
    model: Optional[str] = None,
    prompt: Optional[str] = None,
) -> Dict[str, Any]:
    oa = _require_client()
    try:
        resp = oa.chat.completions.create(
            model=model or settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt or build_prompt(transcript, scenario)},
            ],
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
        )
    except OpenAIError as e:
        _log.exception("Fallo de análisis scenario=%s", scenario)
        raise UpstreamError(f"Análisis fallido: {e}") from e
    return parse_analysis((resp.choices[0].message.content or "").strip())
