"""Cliente HTTP async (httpx) con renovación transparente de sesión.

Flujo ante un 401 en un endpoint protegido:
  1) si el token en caché ya cambió desde el envío, se reintenta con el actual;
  2) si no, se renueva (un único POST /auth/refresh aunque haya varios 401) y se
     reintenta una sola vez. Un segundo 401 se devuelve como `ApiError`.
Los endpoints de auth nunca disparan renovación.
"""
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from ailuyin.client.errors import ApiError, NetworkError
from ailuyin.client.session import SessionManager

_log = logging.getLogger("ailuyin.client")

AUTH_PATHS = ("/auth/login", "/auth/register", "/auth/refresh")

NETWORK_NOTICE = "Error de red, revisa tu conexión"
STATUS_NOTICES = {
    403: "No tienes permiso para esta operación",
    500: "Error del servidor, inténtalo más tarde",
    503: "Servicio no disponible, inténtalo más tarde",
}


def _is_auth_call(url: str) -> bool:
    return any(url.endswith(p) for p in AUTH_PATHS)


def _error_from(resp: httpx.Response) -> ApiError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or resp.reason_phrase or "Error"
    return ApiError(resp.status_code, body.get("code"), message, body)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[SessionManager] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        self.session = session or SessionManager()
        # la cookie HttpOnly del refresh token vive en el cookie jar de httpx
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    # --- núcleo ---
    async def _send(self, method: str, url: str, kwargs: Dict[str, Any], token: Optional[str]) -> httpx.Response:
        headers = dict(kwargs.get("headers") or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        opts = {k: v for k, v in kwargs.items() if k != "headers"}
        try:
            return await self.http.request(method, url, headers=headers, **opts)
        except httpx.TransportError as e:
            _log.warning("Error de red %s %s: %s", method, url, e)
            self.session.notify(NETWORK_NOTICE)
            raise NetworkError(str(e)) from e

    async def _refresh_access_token(self) -> str:
        resp = await self._send("POST", "/auth/refresh", {}, None)
        if resp.status_code != 200:
            raise _error_from(resp)
        return resp.json()["accessToken"]

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        sent = self.session.access_token
        resp = await self._send(method, url, kwargs, sent)

        if resp.status_code == 401 and not _is_auth_call(url):
            current = self.session.access_token
            if current and current != sent:
                token = current
            else:
                token = await self.session.renew(self._refresh_access_token)
            resp = await self._send(method, url, kwargs, token)

        if resp.is_error:
            err = _error_from(resp)
            notice = STATUS_NOTICES.get(resp.status_code)
            if notice:
                self.session.notify(notice)
            raise err
        return resp

    # --- auth ---
    async def _open_session(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await self.request("POST", path, json=payload)
        except ApiError as e:
            self.session.notify(e.message)
            raise
        data = resp.json()
        self.session.start_session(data["accessToken"])
        return data["user"]

    async def register(self, email: str, password: str, nickname: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"email": email, "password": password}
        if nickname:
            payload["nickname"] = nickname
        return await self._open_session("/auth/register", payload)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._open_session("/auth/login", {"email": email, "password": password})

    async def logout(self) -> None:
        try:
            await self.request("POST", "/auth/logout")
        except (ApiError, NetworkError) as e:
            _log.warning("Logout remoto fallido: %s", e)
        finally:
            self.session.clear()

    async def me(self) -> Dict[str, Any]:
        resp = await self.request("GET", "/auth/me")
        return resp.json()["user"]

    # --- audio / análisis ---
    async def transcribe(self, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm") -> str:
        resp = await self.request("POST", "/transcribe", files={"audio": (filename, audio, content_type)})
        return resp.json()["text"]

    async def analyze(self, transcript: str, scenario: str = "general", model: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"transcript": transcript, "scenario": scenario}
        if model:
            payload["model"] = model
        resp = await self.request("POST", "/analyze", json=payload)
        return resp.json()["data"]

    # --- grabaciones ---
    async def list_recordings(self, page: int = 1, limit: int = 20) -> Tuple[list, Dict[str, Any]]:
        resp = await self.request("GET", "/recordings", params={"page": page, "limit": limit})
        data = resp.json()
        return data["recordings"], data["pagination"]

    async def save_recording(self, recording: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self.request("POST", "/recordings", json=recording)
        return resp.json()["recording"]

    async def update_recording(self, recording_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self.request("PUT", f"/recordings/{recording_id}", json=fields)
        return resp.json()["recording"]

    async def delete_recording(self, recording_id: str) -> None:
        await self.request("DELETE", f"/recordings/{recording_id}")
