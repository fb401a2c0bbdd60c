"""
Esquemas Pydantic para operaciones de autenticación.

- Los campos se aceptan como str: las reglas de formato (email, complejidad de
  contraseña) se validan en `services/auth_validator.py` para reportar todas
  las reglas incumplidas a la vez.
- Los nombres JSON siguen la convención camelCase del front end (`accessToken`).
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from ailuyin.api.schemas.user import UserOut


class RegisterPayload(BaseModel):
    email: str
    password: str
    nickname: Optional[str] = None


class LoginPayload(BaseModel):
    email: str
    password: str


# === Response models ===

class AuthOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user: UserOut
    access_token: str = Field(serialization_alias="accessToken")


class TokenOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")


class MessageOut(BaseModel):
    message: str


class MeOut(BaseModel):
    user: UserOut
