from datetime import timedelta

import pytest

from chart_sync.models import AppointmentRecord, AppointmentToothLink, ToothStatus
from chart_sync.models.appointment import AppointmentStatus
from chart_sync.models.treatment import TreatmentStatus
from chart_sync.services.errors import InvalidReferenceError
from chart_sync.services.store import as_utc
from chart_sync.services.tooth_records import (
    PLANNED_STATUS_ON_CREATE,
    plan_treatment_from_diagnosis,
    record_tooth_diagnosis,
)
from chart_sync.services.tooth_status import color_of
from chart_sync.services.types import ToothRecordData, TreatmentData
from conftest import T0


def _record(patient_id, tooth, status, updated_at, **fields):
    return ToothRecordData(
        patient_id=patient_id,
        tooth_number=tooth,
        status=status,
        color_code=color_of(status),
        updated_at=updated_at,
        **fields,
    )


def test_current_record_is_latest_updated_at(sql_store):
    sql_store.append_tooth_record(_record(1, "11", ToothStatus.caries, T0 + timedelta(hours=2)))
    sql_store.append_tooth_record(_record(1, "11", ToothStatus.healthy, T0))
    sql_store.append_tooth_record(_record(1, "12", ToothStatus.missing, T0))

    current = sql_store.get_current_tooth_record(1, "11")

    assert current.status == ToothStatus.caries
    assert as_utc(current.updated_at) == T0 + timedelta(hours=2)
    assert sql_store.get_current_tooth_record(1, "13") is None


def test_history_is_newest_first(sql_store):
    steps = ((0, ToothStatus.caries), (1, ToothStatus.attention), (2, ToothStatus.filled))
    for hours, status in steps:
        sql_store.append_tooth_record(_record(1, "36", status, T0 + timedelta(hours=hours)))

    history = sql_store.list_tooth_history(1, "36")

    assert [row.status for row in history] == [
        ToothStatus.filled,
        ToothStatus.attention,
        ToothStatus.caries,
    ]


def test_replayed_append_returns_existing_row(sql_store):
    record = _record(2, "46", ToothStatus.root_canal, T0, primary_diagnosis="Pulpitis")

    first = sql_store.append_tooth_record(record)
    second = sql_store.append_tooth_record(record)

    assert first.id == second.id
    assert len(sql_store.list_tooth_history(2, "46")) == 1


def test_list_current_filters_patients(sql_store):
    sql_store.append_tooth_record(_record(1, "11", ToothStatus.caries, T0))
    sql_store.append_tooth_record(_record(1, "11", ToothStatus.filled, T0 + timedelta(days=1)))
    sql_store.append_tooth_record(_record(2, "21", ToothStatus.healthy, T0))
    sql_store.append_tooth_record(_record(3, "31", ToothStatus.missing, T0))

    everything = sql_store.list_current_tooth_records()
    subset = sql_store.list_current_tooth_records([1, 3])

    assert [(row.patient_id, row.status) for row in everything] == [
        (1, ToothStatus.filled),
        (2, ToothStatus.healthy),
        (3, ToothStatus.missing),
    ]
    assert [row.patient_id for row in subset] == [1, 3]
    assert sql_store.list_patient_ids_with_records() == [1, 2, 3]


def test_appointment_status_and_links_round_trip(sql_store, session_factory):
    with session_factory() as session:
        appt = AppointmentRecord(patient_id=4, status=AppointmentStatus.scheduled)
        session.add(appt)
        session.flush()
        session.add_all(
            [
                AppointmentToothLink(appointment_id=appt.id, tooth_number="26"),
                AppointmentToothLink(appointment_id=appt.id, tooth_number="27"),
            ]
        )
        session.commit()
        appointment_id = appt.id

    updated = sql_store.set_appointment_status(appointment_id, AppointmentStatus.completed)

    assert updated.status == AppointmentStatus.completed
    assert sql_store.get_appointment(appointment_id).status == AppointmentStatus.completed
    assert [link.tooth_number for link in sql_store.get_linked_teeth(appointment_id)] == ["26", "27"]


def test_missing_rows_raise_invalid_reference(sql_store):
    assert sql_store.get_appointment(404) is None
    assert sql_store.get_treatment(404) is None
    with pytest.raises(InvalidReferenceError):
        sql_store.set_appointment_status(404, AppointmentStatus.completed)
    with pytest.raises(InvalidReferenceError):
        sql_store.update_treatment_status(404, TreatmentStatus.completed)


def test_treatment_create_and_update(sql_store):
    created = sql_store.create_treatment(
        TreatmentData(patient_id=5, tooth_number="14", treatment_type="Composite filling")
    )

    updated = sql_store.update_treatment_status(created.id, TreatmentStatus.in_progress)

    assert created.status == TreatmentStatus.pending
    assert updated.status == TreatmentStatus.in_progress
    assert sql_store.get_treatment(created.id).treatment_type == "Composite filling"


def test_recorded_diagnosis_is_classified_and_planned(sql_store):
    record = record_tooth_diagnosis(
        sql_store,
        patient_id=6,
        tooth_number=" 47 ",
        primary_diagnosis="Deep caries on occlusal surface",
        recommended_treatment="Composite restoration",
        source_consultation_id="c-100",
        now=T0,
    )
    treatment = plan_treatment_from_diagnosis(sql_store, record)

    assert record.tooth_number == "47"
    assert record.status == ToothStatus.caries
    assert record.color_code == "#ef4444"
    assert treatment.tooth_diagnosis_id == record.id
    assert treatment.treatment_type == "Composite restoration"
    assert treatment.planned_status == PLANNED_STATUS_ON_CREATE
    assert treatment.consultation_id == "c-100"


def test_rediagnosis_never_goes_back_in_time(sql_store):
    later = T0 + timedelta(days=3)
    sql_store.append_tooth_record(_record(7, "21", ToothStatus.healthy, later))

    record = record_tooth_diagnosis(
        sql_store,
        patient_id=7,
        tooth_number="21",
        primary_diagnosis="Fractured incisal edge",
        now=T0,
    )

    assert as_utc(record.updated_at) > later
    assert sql_store.get_current_tooth_record(7, "21").status == ToothStatus.attention
