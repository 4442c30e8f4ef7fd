# Database Models
from medguard.models.base import Base, TimestampMixin
from medguard.models.medication import MedicationRecord
from medguard.models.medication_log import MedicationLogRecord

__all__ = [
    "Base",
    "MedicationLogRecord",
    "MedicationRecord",
    "TimestampMixin",
]
