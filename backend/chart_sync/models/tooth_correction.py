from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chart_sync.models.base import Base


class ToothCorrection(Base):
    __tablename__ = "tooth_corrections"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    tooth_number: Mapped[str] = mapped_column(String(2), nullable=False)
    tooth_record_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    from_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    from_color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    to_color: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
