from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chart_sync.models.base import Base


class ToothStatus(str, enum.Enum):
    healthy = "healthy"
    caries = "caries"
    filled = "filled"
    crown = "crown"
    missing = "missing"
    attention = "attention"
    root_canal = "root_canal"
    extraction_needed = "extraction_needed"
    implant = "implant"


class ToothRecord(Base):
    """One row per tooth update; the latest by updated_at is the current state."""

    __tablename__ = "tooth_records"
    __table_args__ = (
        Index("ix_tooth_records_lineage", "patient_id", "tooth_number", "updated_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    tooth_number: Mapped[str] = mapped_column(String(2), nullable=False)
    status: Mapped[ToothStatus] = mapped_column(
        Enum(ToothStatus, name="tooth_status"),
        default=ToothStatus.healthy,
        nullable=False,
    )
    color_code: Mapped[str] = mapped_column(String(7), nullable=False)
    primary_diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommended_treatment: Mapped[str | None] = mapped_column(Text, nullable=True)
    treatment_provided: Mapped[str | None] = mapped_column(Text, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    source_consultation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
