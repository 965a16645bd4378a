"""
Modelos SQLAlchemy: exportar todos para que Alembic los detecte.
"""

from app.models.clinic import Clinic
from app.models.profile import Profile, UserRole
from app.models.audit_log import AuditLog
from app.models.dental_chart import DentalChart
from app.models.treatment import Treatment, Procedure
from app.models.patient_file import PatientFile, StorageStatus
from app.models.queue_entry import QueueEntry, QueueStatus
from app.models.service import Service, ServiceCategory

__all__ = [
    "Clinic",
    "Profile",
    "UserRole",
    "AuditLog",
    "DentalChart",
    "Treatment",
    "Procedure",
    "PatientFile",
    "StorageStatus",
    "QueueEntry",
    "QueueStatus",
    "Service",
    "ServiceCategory",
]
