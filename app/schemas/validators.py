"""
Validaciones compartidas de los formularios (email, teléfono).
"""

import re

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15


def validate_email_format(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("El correo es obligatorio")
    if not EMAIL_PATTERN.fullmatch(value):
        raise ValueError("El correo no es válido")
    return value.lower()


def normalize_phone(value: str | None) -> str | None:
    """
    Teléfono opcional: se cuentan solo los dígitos (7 a 15).
    Se conserva el formato escrito por el usuario.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    digits = re.sub(r"\D", "", value)
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        raise ValueError(
            f"El teléfono debe tener entre {PHONE_MIN_DIGITS} y {PHONE_MAX_DIGITS} dígitos"
        )
    return value
