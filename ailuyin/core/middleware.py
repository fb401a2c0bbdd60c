"""
Middlewares: contexto de petición (request id + log de acceso) y CORS.

El log de acceso incluye el `user_id` cuando `get_current_user` resolvió al
usuario, así los 401 de sesión expirada y los reintentos del cliente se pueden
seguir por request id.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from ailuyin.core.config import settings

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.log = logging.getLogger("ailuyin.request")

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = rid
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            user = getattr(request.state, "user", None)
            self.log.info(
                "%s %s status=%s latency_ms=%s user_id=%s request_id=%s",
                request.method,
                request.url.path,
                status,
                int((time.perf_counter() - start) * 1000),
                getattr(user, "id", None),
                rid,
            )


def add_middlewares(app: FastAPI) -> None:
    # credentials=True para que el navegador mande la cookie del refresh token;
    # incompatible con origen comodín
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        allow_credentials=True,
    )
    app.add_middleware(RequestContextMiddleware)
