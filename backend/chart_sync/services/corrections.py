from __future__ import annotations

import logging
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chart_sync.models.tooth_correction import ToothCorrection
from chart_sync.services.errors import StoreError
from chart_sync.services.types import ToothCorrectionEntry

logger = logging.getLogger("chart_sync.audit")


class CorrectionSink(Protocol):
    def log_correction(self, entry: ToothCorrectionEntry) -> None:
        raise NotImplementedError


class DatabaseCorrectionSink(CorrectionSink):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def log_correction(self, entry: ToothCorrectionEntry) -> None:
        session = self._session_factory()
        try:
            session.add(
                ToothCorrection(
                    patient_id=entry.patient_id,
                    tooth_number=entry.tooth_number,
                    tooth_record_id=entry.tooth_record_id,
                    from_status=entry.from_state.status,
                    from_color=entry.from_state.color,
                    to_status=entry.to_state.status,
                    to_color=entry.to_state.color,
                    reason=entry.reason,
                )
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(f"Correction log write failed: {exc}") from exc
        finally:
            session.close()
        logger.info("tooth_correction", extra=entry.model_dump(by_alias=True))
