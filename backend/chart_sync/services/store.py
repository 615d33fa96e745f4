from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chart_sync.models.appointment import AppointmentRecord, AppointmentStatus, AppointmentToothLink
from chart_sync.models.tooth_record import ToothRecord
from chart_sync.models.treatment import TreatmentRecord, TreatmentStatus
from chart_sync.services.errors import InvalidReferenceError, StoreError
from chart_sync.services.types import (
    AppointmentData,
    AppointmentToothLinkData,
    ToothRecordData,
    TreatmentData,
)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ChartStore(Protocol):
    def get_appointment(self, appointment_id: int) -> AppointmentData | None:
        raise NotImplementedError

    def set_appointment_status(
        self, appointment_id: int, status: AppointmentStatus
    ) -> AppointmentData:
        raise NotImplementedError

    def get_linked_teeth(self, appointment_id: int) -> list[AppointmentToothLinkData]:
        raise NotImplementedError

    def get_treatment(self, treatment_id: int) -> TreatmentData | None:
        raise NotImplementedError

    def create_treatment(self, treatment: TreatmentData) -> TreatmentData:
        raise NotImplementedError

    def update_treatment_status(
        self, treatment_id: int, status: TreatmentStatus
    ) -> TreatmentData:
        raise NotImplementedError

    def get_current_tooth_record(
        self, patient_id: int, tooth_number: str
    ) -> ToothRecordData | None:
        raise NotImplementedError

    def append_tooth_record(self, record: ToothRecordData) -> ToothRecordData:
        raise NotImplementedError

    def list_tooth_history(self, patient_id: int, tooth_number: str) -> list[ToothRecordData]:
        raise NotImplementedError

    def list_patient_ids_with_records(self) -> list[int]:
        raise NotImplementedError

    def list_current_tooth_records(
        self, patient_ids: Iterable[int] | None = None
    ) -> list[ToothRecordData]:
        raise NotImplementedError


def _current_records_stmt(patient_ids: list[int] | None):
    ranked = select(
        ToothRecord.id.label("id"),
        func.row_number()
        .over(
            partition_by=(ToothRecord.patient_id, ToothRecord.tooth_number),
            order_by=(ToothRecord.updated_at.desc(), ToothRecord.id.desc()),
        )
        .label("rank"),
    )
    if patient_ids is not None:
        ranked = ranked.where(ToothRecord.patient_id.in_(patient_ids))
    ranked = ranked.subquery()
    return (
        select(ToothRecord)
        .join(ranked, ranked.c.id == ToothRecord.id)
        .where(ranked.c.rank == 1)
        .order_by(ToothRecord.patient_id, ToothRecord.tooth_number)
    )


class SqlAlchemyChartStore(ChartStore):
    """Store backed by the relational database.

    Each call opens its own short-lived session so concurrent cascade workers
    never share one, and every write commits independently.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get_appointment(self, appointment_id: int) -> AppointmentData | None:
        with self._read() as session:
            appt = session.get(AppointmentRecord, appointment_id)
            return AppointmentData.model_validate(appt) if appt else None

    def set_appointment_status(
        self, appointment_id: int, status: AppointmentStatus
    ) -> AppointmentData:
        with self._write() as session:
            appt = session.get(AppointmentRecord, appointment_id)
            if appt is None:
                raise InvalidReferenceError("appointment", appointment_id, "appointment not found")
            appt.status = status
            session.flush()
            return AppointmentData.model_validate(appt)

    def get_linked_teeth(self, appointment_id: int) -> list[AppointmentToothLinkData]:
        with self._read() as session:
            rows = session.scalars(
                select(AppointmentToothLink)
                .where(AppointmentToothLink.appointment_id == appointment_id)
                .order_by(AppointmentToothLink.id)
            )
            return [AppointmentToothLinkData.model_validate(row) for row in rows]

    def get_treatment(self, treatment_id: int) -> TreatmentData | None:
        with self._read() as session:
            row = session.get(TreatmentRecord, treatment_id)
            return TreatmentData.model_validate(row) if row else None

    def create_treatment(self, treatment: TreatmentData) -> TreatmentData:
        with self._write() as session:
            row = TreatmentRecord(**treatment.model_dump(exclude={"id"}))
            session.add(row)
            session.flush()
            return TreatmentData.model_validate(row)

    def update_treatment_status(
        self, treatment_id: int, status: TreatmentStatus
    ) -> TreatmentData:
        with self._write() as session:
            row = session.get(TreatmentRecord, treatment_id)
            if row is None:
                raise InvalidReferenceError("treatment", treatment_id, "treatment not found")
            row.status = status
            session.flush()
            return TreatmentData.model_validate(row)

    def get_current_tooth_record(
        self, patient_id: int, tooth_number: str
    ) -> ToothRecordData | None:
        with self._read() as session:
            row = self._current_row(session, patient_id, tooth_number)
            return ToothRecordData.model_validate(row) if row else None

    def append_tooth_record(self, record: ToothRecordData) -> ToothRecordData:
        with self._write() as session:
            current = self._current_row(session, record.patient_id, record.tooth_number)
            if current is not None:
                existing = ToothRecordData.model_validate(current)
                if existing.same_payload(record) and as_utc(existing.updated_at) == as_utc(
                    record.updated_at
                ):
                    return existing
            row = ToothRecord(**record.model_dump(exclude={"id"}))
            session.add(row)
            session.flush()
            return ToothRecordData.model_validate(row)

    def list_tooth_history(self, patient_id: int, tooth_number: str) -> list[ToothRecordData]:
        with self._read() as session:
            rows = session.scalars(
                select(ToothRecord)
                .where(
                    ToothRecord.patient_id == patient_id,
                    ToothRecord.tooth_number == tooth_number,
                )
                .order_by(ToothRecord.updated_at.desc(), ToothRecord.id.desc())
            )
            return [ToothRecordData.model_validate(row) for row in rows]

    def list_patient_ids_with_records(self) -> list[int]:
        with self._read() as session:
            rows = session.scalars(
                select(ToothRecord.patient_id).distinct().order_by(ToothRecord.patient_id)
            )
            return [int(patient_id) for patient_id in rows]

    def list_current_tooth_records(
        self, patient_ids: Iterable[int] | None = None
    ) -> list[ToothRecordData]:
        ids = list(patient_ids) if patient_ids is not None else None
        with self._read() as session:
            rows = session.scalars(_current_records_stmt(ids))
            return [ToothRecordData.model_validate(row) for row in rows]

    def _current_row(
        self, session: Session, patient_id: int, tooth_number: str
    ) -> ToothRecord | None:
        return session.scalar(
            select(ToothRecord)
            .where(
                ToothRecord.patient_id == patient_id,
                ToothRecord.tooth_number == tooth_number,
            )
            .order_by(ToothRecord.updated_at.desc(), ToothRecord.id.desc())
            .limit(1)
        )

    @contextmanager
    def _session_scope(self, *, commit: bool) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            if commit:
                session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(f"Store operation failed: {exc}") from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def _read(self):
        return self._session_scope(commit=False)

    def _write(self):
        return self._session_scope(commit=True)
