"""
Esquema público de usuario (sin secretos).
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    """Respuesta pública de usuario: nunca incluye `password_hash`."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    email: str
    nickname: str
    avatar: Optional[str] = None
    is_email_verified: bool = Field(serialization_alias="isEmailVerified")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")
    last_login_at: Optional[datetime] = Field(default=None, serialization_alias="lastLoginAt")
