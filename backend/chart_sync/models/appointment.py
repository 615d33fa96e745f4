from __future__ import annotations

import enum

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chart_sync.models.base import Base, TimestampMixin


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class AppointmentRecord(Base, TimestampMixin):
    __tablename__ = "appointment_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    appointment_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_record_status"),
        default=AppointmentStatus.scheduled,
        nullable=False,
    )
    linked_treatment_id: Mapped[int | None] = mapped_column(
        ForeignKey("treatment_records.id"), nullable=True
    )

    tooth_links = relationship(
        "AppointmentToothLink",
        back_populates="appointment",
        order_by="AppointmentToothLink.id",
        lazy="selectin",
    )


class AppointmentToothLink(Base):
    __tablename__ = "appointment_tooth_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointment_records.id"), nullable=False, index=True
    )
    tooth_number: Mapped[str] = mapped_column(String(12), nullable=False)
    tooth_diagnosis_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    diagnosis_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    appointment = relationship("AppointmentRecord", back_populates="tooth_links")
