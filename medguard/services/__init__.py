# Business Logic Services
from medguard.services.log_store import (
    InMemoryLogStore,
    LogStore,
    SqlAlchemyLogStore,
)
from medguard.services.medications import (
    MedicationNotFoundError,
    create_medication,
    delete_medication,
    get_medication,
    list_medications,
    set_medication_active,
    update_medication,
)
from medguard.services.safety_gate import GateResult, SafetyGate

__all__ = [
    "GateResult",
    "InMemoryLogStore",
    "LogStore",
    "MedicationNotFoundError",
    "SafetyGate",
    "SqlAlchemyLogStore",
    "create_medication",
    "delete_medication",
    "get_medication",
    "list_medications",
    "set_medication_active",
    "update_medication",
]
