from chart_sync.models.base import Base
from chart_sync.models.tooth_record import ToothRecord, ToothStatus
from chart_sync.models.treatment import TreatmentRecord, TreatmentStatus
from chart_sync.models.appointment import (
    AppointmentRecord,
    AppointmentStatus,
    AppointmentToothLink,
)
from chart_sync.models.tooth_correction import ToothCorrection
from chart_sync.models.tooth_change_event import ToothChangeEvent

__all__ = [
    "Base",
    "ToothRecord",
    "ToothStatus",
    "TreatmentRecord",
    "TreatmentStatus",
    "AppointmentRecord",
    "AppointmentStatus",
    "AppointmentToothLink",
    "ToothCorrection",
    "ToothChangeEvent",
]
