"""
Modelo Pydantic para documentos de la colección `refresh_token`.

El token en claro nunca se persiste: sólo su hash SHA-256.
"""
from datetime import datetime
from pydantic import BaseModel


class RefreshTokenRecord(BaseModel):
    id: str
    token_hash: str
    user_id: str  # referencia, el ledger no es dueño del usuario
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
