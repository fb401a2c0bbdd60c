"""Cliente OpenAI compartido por transcripción y análisis.

Se crea perezosamente la primera vez que hace falta y se recrea si cambia la
API key (p. ej. recarga de configuración en caliente).
"""
from typing import Optional, Tuple

from openai import OpenAI

from ailuyin.core.config import settings

# Las transcripciones largas tardan; el SDK reintenta sólo errores transitorios
OPENAI_TIMEOUT_SECONDS = 120.0
OPENAI_MAX_RETRIES = 2

_cached: Optional[Tuple[str, OpenAI]] = None


def get_openai() -> Optional[OpenAI]:
    """None si no hay `OPENAI_API_KEY`; los routers lo traducen a 503."""
    global _cached
    key = settings.openai_api_key
    if not key:
        return None
    if _cached is None or _cached[0] != key:
        _cached = (key, OpenAI(api_key=key, timeout=OPENAI_TIMEOUT_SECONDS, max_retries=OPENAI_MAX_RETRIES))
    return _cached[1]
