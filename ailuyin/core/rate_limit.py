"""
Límite de intentos por ventana deslizante, en memoria del proceso.

Se usa para frenar fuerza bruta sobre /auth/login (clave = (ip, ruta)). Con
varias réplicas cada una cuenta por separado.
"""
from collections import defaultdict, deque
from threading import Lock
from time import monotonic
from typing import Deque, Dict, Optional, Tuple

Key = Tuple[str, str]


class SlidingWindow:
    def __init__(self) -> None:
        self._hits: Dict[Key, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def hit(self, key: Key, limit: int, window_seconds: float, now: Optional[float] = None) -> bool:
        """Registra un intento; False si la clave ya agotó `limit` en la ventana."""
        if limit <= 0:
            return True
        now = monotonic() if now is None else now
        with self._lock:
            hits = self._hits[key]
            while hits and now - hits[0] >= window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


_window = SlidingWindow()


def allow(key: Key, limit: int = 5, window_seconds: float = 60) -> bool:
    return _window.hit(key, limit, window_seconds)


def reset() -> None:
    _window.clear()
