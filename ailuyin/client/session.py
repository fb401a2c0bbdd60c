"""Estado de sesión del cliente: access token en caché, renovación única y limpieza local.

Un solo `SessionManager` por proceso cliente. El "refresh en curso" es un
`asyncio.Future` que se consulta y se asigna antes del primer `await`, así que
dentro de un mismo loop no hace falta ningún lock.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, MutableMapping, Optional

from ailuyin.client.errors import SessionExpired
from ailuyin.core import time as clock

_log = logging.getLogger("ailuyin.client")

API_VERSION = "2.0"

ACCESS_TOKEN_KEY = "access_token"
LAST_LOGIN_KEY = "last_login"
API_VERSION_KEY = "api_version"

SESSION_MAX_AGE = timedelta(days=7)
REDIRECT_DELAY_SECONDS = 2.0
NOTICE_TTL_SECONDS = 5.0

SESSION_EXPIRED_NOTICE = "Sesión expirada, vuelve a iniciar sesión"


class SessionManager:
    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        *,
        on_redirect: Optional[Callable[[], None]] = None,
        redirect_delay: float = REDIRECT_DELAY_SECONDS,
        notice_ttl: float = NOTICE_TTL_SECONDS,
    ) -> None:
        self.storage: MutableMapping[str, str] = storage if storage is not None else {}
        self.on_redirect = on_redirect
        self.redirect_delay = redirect_delay
        self.notice_ttl = notice_ttl
        self.notice: Optional[str] = None
        self._notice_timer: Optional[asyncio.TimerHandle] = None
        self._refreshing: Optional["asyncio.Future[str]"] = None
        self.check_and_clean()

    # --- estado local ---
    @property
    def access_token(self) -> Optional[str]:
        return self.storage.get(ACCESS_TOKEN_KEY)

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing is not None and not self._refreshing.done()

    def check_and_clean(self) -> bool:
        """Descarta credenciales de otra versión del protocolo o de más de 7 días.

        Devuelve True si se limpió algo.
        """
        if self.storage.get(API_VERSION_KEY) != API_VERSION:
            had_token = ACCESS_TOKEN_KEY in self.storage
            self.clear()
            self.storage[API_VERSION_KEY] = API_VERSION
            if had_token:
                _log.info("Versión de API cambiada; credenciales locales eliminadas")
            return had_token

        if ACCESS_TOKEN_KEY not in self.storage:
            return False
        stamp = self._last_login()
        if stamp is None or clock.now_utc() - stamp > SESSION_MAX_AGE:
            _log.info("Sesión local con más de 7 días; token descartado")
            self.clear()
            return True
        return False

    def _last_login(self) -> Optional[datetime]:
        raw = self.storage.get(LAST_LOGIN_KEY)
        if not raw:
            return None
        try:
            return clock.as_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None

    def start_session(self, access_token: str) -> None:
        """Guarda el token tras login/registro y sella la hora de inicio."""
        self.storage[ACCESS_TOKEN_KEY] = access_token
        self.storage[LAST_LOGIN_KEY] = clock.now_utc().isoformat()
        self.storage[API_VERSION_KEY] = API_VERSION

    def clear(self) -> None:
        self.storage.pop(ACCESS_TOKEN_KEY, None)
        self.storage.pop(LAST_LOGIN_KEY, None)

    def auth_headers(self) -> dict:
        token = self.access_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    # --- avisos ---
    def notify(self, message: str) -> None:
        self.notice = message
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._notice_timer = loop.call_later(self.notice_ttl, self._clear_notice)

    def _clear_notice(self) -> None:
        self.notice = None
        self._notice_timer = None

    # --- renovación ---
    async def renew(self, refresher: Callable[[], Awaitable[str]]) -> str:
        """Obtiene un access token nuevo; las llamadas concurrentes comparten un solo refresh."""
        if self._refreshing is not None and not self._refreshing.done():
            return await asyncio.shield(self._refreshing)

        fut: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
        self._refreshing = fut
        try:
            token = await refresher()
        except asyncio.CancelledError:
            fut.cancel()
            raise
        except Exception as e:
            _log.warning("Renovación de sesión fallida: %s", e)
            self._expire()
            err = SessionExpired(SESSION_EXPIRED_NOTICE)
            fut.set_exception(err)
            # evita "exception was never retrieved" si nadie más esperaba
            fut.exception()
            raise err from e
        else:
            self.storage[ACCESS_TOKEN_KEY] = token
            fut.set_result(token)
            return token
        finally:
            if self._refreshing is fut:
                self._refreshing = None

    def _expire(self) -> None:
        self.clear()
        self.notify(SESSION_EXPIRED_NOTICE)
        if self.on_redirect is not None:
            asyncio.get_running_loop().call_later(self.redirect_delay, self.on_redirect)
