"""
Errores de dominio y handlers globales para respuestas de error consistentes.

Cada error expone un `code` estable (p. ej. TOKEN_EXPIRED) separado del mensaje
legible, para que el cliente decida sin comparar strings.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code}


# === Validación / reglas de negocio ===

class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Datos de entrada inválidos"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["errors"] = self.errors
        return body


class EmailTaken(AppError):
    status_code = 400
    code = "EMAIL_TAKEN"
    message = "El email ya está registrado"


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Email o contraseña incorrectos"


class RateLimited(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Demasiados intentos, espera un momento"


# === Estado de sesión ===

class MissingToken(AppError):
    status_code = 401
    code = "MISSING_TOKEN"
    message = "No se proporcionó refresh token"


class InvalidOrExpiredToken(AppError):
    status_code = 401
    code = "INVALID_OR_EXPIRED_TOKEN"
    message = "Refresh token inválido o expirado"


class Unauthenticated(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Falta token de acceso"


class InvalidToken(AppError):
    status_code = 401
    code = "TOKEN_INVALID"
    message = "Token inválido"


class InvalidSignature(InvalidToken):
    message = "Firma de token inválida"


class WrongTokenType(InvalidToken):
    message = "Tipo de token inválido"


class TokenExpired(AppError):
    status_code = 401
    code = "TOKEN_EXPIRED"
    message = "Token expirado"


class UserNotFound(AppError):
    status_code = 401
    code = "USER_NOT_FOUND"
    message = "Usuario no encontrado"


# === Datos / infraestructura ===

class DuplicateToken(AppError):
    status_code = 500
    code = "DUPLICATE_TOKEN"
    message = "Colisión de refresh token"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Recurso no encontrado"


class ServiceUnavailable(AppError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    message = "Servicio no disponible"


class UpstreamError(AppError):
    status_code = 502
    code = "UPSTREAM_ERROR"
    message = "Fallo en el proveedor externo"


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("ailuyin.errors")

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("%s %s request_id=%s", exc.code, exc.message, _req_id(request))
        body = exc.to_body()
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        body: Dict[str, Any] = {"message": exc.detail or "HTTP error", "code": "HTTP_ERROR"}
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg", "")}
            for e in exc.errors()
        ]
        body: Dict[str, Any] = {"message": ValidationError.message, "code": ValidationError.code, "errors": errors}
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        rid = _req_id(request)
        log.exception("Unhandled error request_id=%s", rid)
        body: Dict[str, Any] = {"message": "Internal server error", "code": "INTERNAL_ERROR"}
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=500, content=body)
