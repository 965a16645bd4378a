"""
Definición de permisos RBAC por rol.
Mapea qué acciones puede realizar cada rol.
"""

from app.models.profile import UserRole

_ALL = [UserRole.ADMIN, UserRole.DOCTOR, UserRole.STAFF, UserRole.PATIENT]
_STAFF = [UserRole.ADMIN, UserRole.DOCTOR, UserRole.STAFF]
_CLINICAL = [UserRole.ADMIN, UserRole.DOCTOR]

# ── Permisos por recurso ─────────────────────────────
# Formato: {recurso: {acción: [roles permitidos]}}
# Los pacientes solo ven sus propios registros (ensure_patient_access).
PERMISSIONS: dict[str, dict[str, list[UserRole]]] = {
    "clinic": {
        "read": _ALL,
        "update": [UserRole.ADMIN],
    },
    "profile": {
        # Directorio de pacientes
        "read": _STAFF,
    },
    "dental_chart": {
        "read": _STAFF,
        "read_summary": _ALL,
        "write": _CLINICAL,
    },
    "treatment": {
        "read": _ALL,
        "create": _CLINICAL,
        "update": _CLINICAL,
        "delete": _CLINICAL,
    },
    "patient_file": {
        "read": _ALL,
        "upload": _ALL,
        "delete": _ALL,
    },
    "queue": {
        "read": _STAFF,
        "manage": _STAFF,
    },
    "service": {
        "read": _ALL,
        "create": [UserRole.ADMIN],
        "update": [UserRole.ADMIN],
        "delete": [UserRole.ADMIN],
    },
}


def has_permission(role: UserRole, resource: str, action: str) -> bool:
    """Verifica si un rol tiene permiso para una acción en un recurso."""
    resource_perms = PERMISSIONS.get(resource, {})
    allowed_roles = resource_perms.get(action, [])
    return role in allowed_roles
