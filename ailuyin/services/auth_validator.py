"""
Reglas de validación para registro y login.

Acumula todas las reglas incumplidas (no sólo la primera) para que el cliente
pueda mostrarlas juntas.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from ailuyin.core.exceptions import ValidationError

PASSWORD_MIN_LENGTH = 8
NICKNAME_MIN, NICKNAME_MAX = 2, 20


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_email(email: str, errors: List[Dict[str, str]]) -> str:
    normalized = normalize_email(email)
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError:
        errors.append({"field": "email", "message": "Proporciona un email válido"})
    return normalized


def password_violations(password: str) -> List[str]:
    out = []
    if len(password) < PASSWORD_MIN_LENGTH:
        out.append(f"La contraseña debe tener al menos {PASSWORD_MIN_LENGTH} caracteres")
    if not re.search(r"[A-Z]", password):
        out.append("La contraseña debe incluir una mayúscula")
    if not re.search(r"[a-z]", password):
        out.append("La contraseña debe incluir una minúscula")
    if not re.search(r"\d", password):
        out.append("La contraseña debe incluir un dígito")
    return out


def validate_registration(email: str, password: str, nickname: Optional[str]) -> Tuple[str, str]:
    """Devuelve (email normalizado, nickname final) o lanza ValidationError."""
    errors: List[Dict[str, str]] = []
    normalized = _check_email(email, errors)
    for msg in password_violations(password or ""):
        errors.append({"field": "password", "message": msg})

    nick = (nickname or "").strip() if nickname is not None else None
    if nick is not None and not (NICKNAME_MIN <= len(nick) <= NICKNAME_MAX):
        errors.append({"field": "nickname", "message": f"El nickname debe tener entre {NICKNAME_MIN} y {NICKNAME_MAX} caracteres"})

    if errors:
        raise ValidationError(errors)
    return normalized, nick or normalized.split("@")[0]


def validate_login(email: str, password: str) -> str:
    errors: List[Dict[str, str]] = []
    normalized = _check_email(email, errors)
    if not password:
        errors.append({"field": "password", "message": "Ingresa la contraseña"})
    if errors:
        raise ValidationError(errors)
    return normalized
