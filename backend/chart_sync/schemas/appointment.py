from typing import Optional

from pydantic import BaseModel, ConfigDict

from chart_sync.models.appointment import AppointmentStatus


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class ToothOutcomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tooth_number: str
    outcome: str
    link_id: Optional[int] = None
    previous_status: Optional[str] = None
    status: Optional[str] = None
    color_code: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None


class CascadeResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: int
    patient_id: int
    appointment_status: AppointmentStatus
    treatment_id: Optional[int] = None
    treatment_status: Optional[str] = None
    treatment_error: Optional[str] = None
    ok: bool
    updated_count: int
    user_message: Optional[str] = None
    succeeded: list[ToothOutcomeOut]
    failed: list[ToothOutcomeOut]
