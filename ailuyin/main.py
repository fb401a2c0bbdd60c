"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
import asyncio
import logging

from fastapi import FastAPI

from ailuyin.api.router import api_router
from ailuyin.core.config import settings
from ailuyin.core.exceptions import register_exception_handlers
from ailuyin.core.logging import setup_logging
from ailuyin.core.middleware import add_middlewares
from ailuyin.infrastructure.db.bootstrap import ensure_collections
from ailuyin.infrastructure.db.mongo import close_mongo, db_ready, init_mongo
from ailuyin.repositories.registry import in_memory_repositories, mongo_repositories

_log = logging.getLogger("ailuyin.startup")

SWEEP_INTERVAL_SECONDS = 3600


async def _sweep_expired_tokens(app: FastAPI) -> None:
    """Barrido periódico del ledger en memoria (Mongo usa índice TTL)."""
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        repos = getattr(app.state, "repos", None)
        if repos is not None:
            n = repos.refresh_tokens.purge_expired()
            if n:
                _log.info("refresh tokens expirados purgados=%s", n)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name)

    add_middlewares(app)
    register_exception_handlers(app)

    # El backend en memoria está listo sin startup; Mongo se conecta en startup
    app.state.repos = in_memory_repositories() if settings.storage_backend == "memory" else None

    @app.on_event("startup")
    async def on_startup():
        if settings.storage_backend == "memory":
            _log.warning("storage_backend=memory: los datos no persisten entre reinicios")
            app.state.sweeper = asyncio.create_task(_sweep_expired_tokens(app))
            return
        init_mongo()
        if not db_ready():
            _log.warning("Mongo no listo; las rutas con datos responderán 503")
            return
        # Garantiza colecciones/índices/validadores mínimos
        ensure_collections()
        app.state.repos = mongo_repositories()

    @app.on_event("shutdown")
    async def on_shutdown():
        sweeper = getattr(app.state, "sweeper", None)
        if sweeper is not None:
            sweeper.cancel()
        close_mongo()

    # Monta routers bajo el prefijo configurado
    app.include_router(api_router, prefix=settings.api_prefix_normalized)
    return app


setup_logging(settings.log_level)
app = create_app()
