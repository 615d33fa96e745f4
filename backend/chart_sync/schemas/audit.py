from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from chart_sync.services.types import ToothCorrectionEntry


class ToothAuditRequest(BaseModel):
    patient_ids: Optional[list[int]] = None
    dry_run: bool = False
    batch_size: Optional[int] = Field(default=None, ge=1, le=10000)


class ToothAuditReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dry_run: bool
    cancelled: bool
    shards_total: int
    shards_completed: int
    patients_scanned: int
    records_scanned: int
    corrections_count: int
    corrections: list[ToothCorrectionEntry]
    failures: list[dict]
    log_failures: list[dict]
    transitions: dict[str, int]


class ToothCorrectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    patient_id: int
    tooth_number: str
    tooth_record_id: Optional[int] = None
    from_status: Optional[str] = None
    from_color: Optional[str] = None
    to_status: str
    to_color: str
    reason: str
