"""Errores del cliente HTTP.

`NetworkError` (sin respuesta) nunca dispara renovación de sesión; sólo un 401
explícito en un endpoint protegido lo hace.
"""
from typing import Any, Dict, Optional


class ClientError(Exception):
    pass


class NetworkError(ClientError):
    """No hubo respuesta del servidor (conexión, DNS, timeout)."""


class ApiError(ClientError):
    def __init__(self, status_code: int, code: Optional[str], message: str, body: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"{status_code} {code or ''} {message}".strip())
        self.status_code = status_code
        self.code = code
        self.message = message
        self.body = body or {}


class SessionExpired(ClientError):
    """La renovación falló: hay que volver a iniciar sesión."""
