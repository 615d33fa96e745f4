from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chart_sync.models.base import Base


class TreatmentStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TreatmentRecord(Base):
    __tablename__ = "treatment_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    consultation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tooth_diagnosis_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tooth_number: Mapped[str | None] = mapped_column(String(2), nullable=True)
    treatment_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[TreatmentStatus] = mapped_column(
        Enum(TreatmentStatus, name="treatment_record_status"),
        default=TreatmentStatus.pending,
        nullable=False,
    )
    # Legacy free-form field read by the scheduling UI.
    planned_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
