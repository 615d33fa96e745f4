from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from chart_sync.models.tooth_record import ToothStatus


class ToothDiagnosisCreate(BaseModel):
    tooth_number: str
    primary_diagnosis: Optional[str] = None
    recommended_treatment: Optional[str] = None
    follow_up_required: bool = False
    source_consultation_id: Optional[str] = None
    plan_treatment: bool = False


class ToothRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    tooth_number: str
    status: ToothStatus
    color_code: str
    primary_diagnosis: Optional[str] = None
    recommended_treatment: Optional[str] = None
    treatment_provided: Optional[str] = None
    follow_up_required: bool
    source_consultation_id: Optional[str] = None
    updated_at: datetime


class ToothDiagnosisOut(BaseModel):
    record: ToothRecordOut
    treatment_id: Optional[int] = None


class ToothChartSummaryOut(BaseModel):
    healthy: int
    caries: int
    restorations: int
    attention: int
    missing: int
    total: int
