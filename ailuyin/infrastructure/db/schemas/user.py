"""
Modelo Pydantic para documentos de la colección `user`.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class UserRecord(BaseModel):
    id: str  # ObjectId en string
    email: str
    password_hash: str
    nickname: str
    avatar: Optional[str] = None
    is_email_verified: bool = False
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None

    def public(self) -> Dict[str, Any]:
        """Campos públicos (nunca incluye password_hash)."""
        return self.model_dump(mode="json", exclude={"password_hash"})
