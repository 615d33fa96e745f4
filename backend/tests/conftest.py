import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import threading
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chart_sync.db.session import get_db
from chart_sync.deps import get_chart_store, get_correction_sink, get_publisher
from chart_sync.main import app
from chart_sync.models import Base, ToothStatus
from chart_sync.models.appointment import AppointmentStatus
from chart_sync.models.treatment import TreatmentStatus
from chart_sync.services.corrections import CorrectionSink, DatabaseCorrectionSink
from chart_sync.services.errors import StoreError
from chart_sync.services.notifications import ToothChangePublisher
from chart_sync.services.store import ChartStore, SqlAlchemyChartStore, as_utc
from chart_sync.services.tooth_status import color_of
from chart_sync.services.types import (
    AppointmentData,
    AppointmentToothLinkData,
    ToothCorrectionEntry,
    ToothRecordData,
    TreatmentData,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class InMemoryChartStore(ChartStore):
    def __init__(self) -> None:
        self.appointments: dict[int, AppointmentData] = {}
        self.links: list[AppointmentToothLinkData] = []
        self.treatments: dict[int, TreatmentData] = {}
        self.tooth_records: list[ToothRecordData] = []
        self.fail_appends_for: set[str] = set()
        self.fail_treatment_updates = False
        self.block_reads_for: dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self._next_id = 1

    def _id(self) -> int:
        with self._lock:
            value = self._next_id
            self._next_id += 1
            return value

    def add_appointment(
        self,
        patient_id: int,
        status: AppointmentStatus,
        *,
        teeth: tuple[str, ...] = (),
        linked_treatment_id: int | None = None,
        diagnosis_note: str | None = None,
    ) -> AppointmentData:
        appt = AppointmentData(
            id=self._id(),
            patient_id=patient_id,
            status=status,
            linked_treatment_id=linked_treatment_id,
        )
        self.appointments[appt.id] = appt
        for tooth in teeth:
            self.links.append(
                AppointmentToothLinkData(
                    id=self._id(),
                    appointment_id=appt.id,
                    tooth_number=tooth,
                    diagnosis_note=diagnosis_note,
                )
            )
        return appt

    def add_treatment(self, patient_id: int, treatment_type: str | None, **fields) -> TreatmentData:
        treatment = TreatmentData(
            id=self._id(), patient_id=patient_id, treatment_type=treatment_type, **fields
        )
        self.treatments[treatment.id] = treatment
        return treatment

    def seed_tooth(
        self,
        patient_id: int,
        tooth_number: str,
        status: ToothStatus,
        *,
        color_code: str | None = None,
        updated_at: datetime = T0,
        **fields,
    ) -> ToothRecordData:
        record = ToothRecordData(
            id=self._id(),
            patient_id=patient_id,
            tooth_number=tooth_number,
            status=status,
            color_code=color_code or color_of(status),
            updated_at=updated_at,
            **fields,
        )
        self.tooth_records.append(record)
        return record

    def get_appointment(self, appointment_id: int) -> AppointmentData | None:
        return self.appointments.get(appointment_id)

    def set_appointment_status(self, appointment_id, status):
        appt = self.appointments[appointment_id].model_copy(update={"status": status})
        self.appointments[appointment_id] = appt
        return appt

    def get_linked_teeth(self, appointment_id: int) -> list[AppointmentToothLinkData]:
        return [link for link in self.links if link.appointment_id == appointment_id]

    def get_treatment(self, treatment_id: int) -> TreatmentData | None:
        return self.treatments.get(treatment_id)

    def create_treatment(self, treatment: TreatmentData) -> TreatmentData:
        created = treatment.model_copy(update={"id": self._id()})
        self.treatments[created.id] = created
        return created

    def update_treatment_status(self, treatment_id: int, status: TreatmentStatus) -> TreatmentData:
        if self.fail_treatment_updates:
            raise StoreError("treatment store unavailable")
        updated = self.treatments[treatment_id].model_copy(update={"status": status})
        self.treatments[treatment_id] = updated
        return updated

    def get_current_tooth_record(self, patient_id: int, tooth_number: str):
        gate = self.block_reads_for.get(tooth_number)
        if gate is not None:
            gate.wait(timeout=5)
        history = self.list_tooth_history(patient_id, tooth_number)
        return history[0] if history else None

    def append_tooth_record(self, record: ToothRecordData) -> ToothRecordData:
        if record.tooth_number in self.fail_appends_for:
            raise StoreError(f"append failed for tooth {record.tooth_number}")
        stored = record.model_copy(update={"id": self._id()})
        with self._lock:
            self.tooth_records.append(stored)
        return stored

    def list_tooth_history(self, patient_id: int, tooth_number: str) -> list[ToothRecordData]:
        with self._lock:
            rows = [
                row
                for row in self.tooth_records
                if row.patient_id == patient_id and row.tooth_number == tooth_number
            ]
        return sorted(rows, key=lambda row: (as_utc(row.updated_at), row.id), reverse=True)

    def list_patient_ids_with_records(self) -> list[int]:
        return sorted({row.patient_id for row in self.tooth_records})

    def list_current_tooth_records(self, patient_ids=None) -> list[ToothRecordData]:
        wanted = set(patient_ids) if patient_ids is not None else None
        keys = sorted({(row.patient_id, row.tooth_number) for row in self.tooth_records})
        current = []
        for patient_id, tooth in keys:
            if wanted is not None and patient_id not in wanted:
                continue
            current.append(self.list_tooth_history(patient_id, tooth)[0])
        return current


class RecordingPublisher(ToothChangePublisher):
    def __init__(self, *, fail: bool = False) -> None:
        self.events: list[tuple[int, str, str, str]] = []
        self.fail = fail

    def publish(self, patient_id, tooth_number, status, color_code) -> None:
        if self.fail:
            raise RuntimeError("realtime channel down")
        self.events.append((patient_id, tooth_number, status, color_code))


class ListCorrectionSink(CorrectionSink):
    def __init__(self) -> None:
        self.entries: list[ToothCorrectionEntry] = []

    def log_correction(self, entry: ToothCorrectionEntry) -> None:
        self.entries.append(entry)


@pytest.fixture()
def memory_store():
    return InMemoryChartStore()


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def correction_sink():
    return ListCorrectionSink()


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def sql_store(session_factory):
    return SqlAlchemyChartStore(session_factory)


@pytest.fixture()
def api_client(session_factory, publisher):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_chart_store] = lambda: SqlAlchemyChartStore(session_factory)
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_correction_sink] = lambda: DatabaseCorrectionSink(session_factory)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
