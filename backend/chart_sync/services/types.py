from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chart_sync.models.appointment import AppointmentStatus
from chart_sync.models.tooth_record import ToothStatus
from chart_sync.models.treatment import TreatmentStatus


class ToothRecordData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    patient_id: int
    tooth_number: str
    status: ToothStatus
    color_code: str
    primary_diagnosis: str | None = None
    recommended_treatment: str | None = None
    treatment_provided: str | None = None
    follow_up_required: bool = False
    source_consultation_id: str | None = None
    updated_at: datetime

    def same_payload(self, other: ToothRecordData) -> bool:
        exclude = {"id", "updated_at"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)


class TreatmentData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    patient_id: int
    consultation_id: str | None = None
    tooth_diagnosis_id: int | None = None
    tooth_number: str | None = None
    treatment_type: str | None = None
    status: TreatmentStatus = TreatmentStatus.pending
    planned_status: str | None = None


class AppointmentData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    appointment_type: str | None = None
    status: AppointmentStatus
    linked_treatment_id: int | None = None


class AppointmentToothLinkData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    appointment_id: int
    tooth_number: str
    tooth_diagnosis_id: int | None = None
    diagnosis_note: str | None = None


class ToothState(BaseModel):
    status: str | None = None
    color: str | None = None


class ToothCorrectionEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tooth_number: str
    patient_id: int
    from_state: ToothState = Field(alias="from")
    to_state: ToothState = Field(alias="to")
    reason: str = "audit"
    tooth_record_id: int | None = None
