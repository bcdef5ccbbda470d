from medtrack.models.base import Base, TimestampMixin, model_to_dict
from medtrack.models.dose_record import (
    DoseRecord,
    DoseRecordEvent,
    PrnDoseRecord,
    RecordedByType,
)
from medtrack.models.medication import (
    InventoryActorType,
    InventoryAdjustmentReason,
    InventoryAlertEvent,
    InventoryAlertState,
    Medication,
    MedicationInventoryAdjustment,
)
from medtrack.models.patient import CaregiverPatientLink, LinkStatus, Patient
from medtrack.models.push import PushDelivery, PushDevice, PushPlatform
from medtrack.models.regimen import Regimen

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "model_to_dict",
    # Core Models
    "Patient",
    "CaregiverPatientLink",
    "LinkStatus",
    "Medication",
    "Regimen",
    "DoseRecord",
    "DoseRecordEvent",
    "PrnDoseRecord",
    "RecordedByType",
    # Inventory
    "MedicationInventoryAdjustment",
    "InventoryAlertEvent",
    "InventoryAlertState",
    "InventoryAdjustmentReason",
    "InventoryActorType",
    # Push
    "PushDevice",
    "PushDelivery",
    "PushPlatform",
]
