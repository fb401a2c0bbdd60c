"""Configuración central de la aplicación (Pydantic Settings).

- Carga variables desde .env en la raíz del proyecto.
- Agrupa ajustes por área: App, CORS, Storage/Mongo, Auth/JWT, Cookies, OpenAI.
"""
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Resuelve el .env ubicado en la raíz del proyecto (independiente del CWD)
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Conjunto de variables de configuración con valores por defecto razonables.

    Nota: los valores pueden sobreescribirse vía variables de entorno (.env).
    """
    # App
    app_name: str = "AI Luyin API"
    api_prefix: str = "/api"
    environment: str = Field(
        "development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV", "ENVIRONMENT"),
    )
    log_level: str = "INFO"

    # CORS (front end en Vite/React)
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]
    cors_origin_regex: str | None = r"https://.*\.netlify\.(app|live)"

    # Storage: "mongo" (durable) o "memory" (tests / desarrollo local)
    storage_backend: Literal["mongo", "memory"] = "mongo"

    # Mongo
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "ailuyin"
    mongo_tls: bool = False
    # TLS relax options (dev only)
    mongo_tls_insecure: bool = False
    mongo_tls_allow_invalid_hostnames: bool = False

    # Auth / JWT
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    # 0 = sin límite de sesiones concurrentes por usuario
    max_sessions_per_user: int = Field(0, ge=0)
    login_rate_per_min: int = 20

    # Cookie del refresh token
    refresh_cookie_name: str = "refreshToken"
    cookie_secure: bool | None = None  # None -> sólo en producción

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_transcribe_model: str = "whisper-1"
    transcribe_language: str | None = None  # None -> autodetección
    analysis_temperature: float = 0.3
    analysis_max_tokens: int = 2000

    # Subida de audio
    upload_max_bytes: int = 25 * 1024 * 1024

    # --- Utilidades derivadas / helpers ---
    @property
    def api_prefix_normalized(self) -> str:
        """'api/' -> '/api', '/' o '' -> '' (montaje en la raíz)."""
        pref = (self.api_prefix or "").strip().strip("/")
        return f"/{pref}" if pref else ""

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def refresh_cookie_secure(self) -> bool:
        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.is_production

    @property
    def refresh_token_max_age(self) -> int:
        """Vida del refresh token en segundos (también Max-Age de la cookie)."""
        return self.refresh_token_expire_days * 24 * 60 * 60

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # no fallar si hay variables no usadas
    )


settings = Settings()
