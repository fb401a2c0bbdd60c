"""
Logging de la app (formato único para app, Uvicorn y librerías ruidosas).
"""
import logging

# Librerías que en INFO/DEBUG loguean cada operación
_NOISY = ("pymongo", "httpx", "httpcore", "openai")


def setup_logging(level: str = "INFO") -> None:
    lvl = logging.getLevelName(level.upper())
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(lvl)
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(lvl, logging.WARNING))
