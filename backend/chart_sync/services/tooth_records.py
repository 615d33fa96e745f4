from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable

from chart_sync.models.tooth_record import ToothStatus
from chart_sync.models.treatment import TreatmentStatus
from chart_sync.services.errors import InvalidReferenceError
from chart_sync.services.store import ChartStore, as_utc
from chart_sync.services.tooth_state_classification import classify_initial_status
from chart_sync.services.tooth_status import color_of, normalize_tooth_number
from chart_sync.services.types import ToothRecordData, TreatmentData

PLANNED_STATUS_ON_CREATE = "Planned"

_RESTORATION_STATUSES = {
    ToothStatus.filled,
    ToothStatus.crown,
    ToothStatus.root_canal,
    ToothStatus.implant,
}
_ATTENTION_STATUSES = {ToothStatus.attention, ToothStatus.extraction_needed}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_updated_at(current: ToothRecordData | None, now: datetime) -> datetime:
    now = as_utc(now)
    if current is None:
        return now
    previous = as_utc(current.updated_at)
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)


def successor_record(
    current: ToothRecordData, status: ToothStatus, now: datetime
) -> ToothRecordData:
    return current.model_copy(
        update={
            "id": None,
            "status": status,
            "color_code": color_of(status),
            "updated_at": next_updated_at(current, now),
        }
    )


def record_tooth_diagnosis(
    store: ChartStore,
    *,
    patient_id: int,
    tooth_number: str,
    primary_diagnosis: str | None,
    recommended_treatment: str | None = None,
    follow_up_required: bool = False,
    source_consultation_id: str | None = None,
    now: datetime | None = None,
) -> ToothRecordData:
    tooth = normalize_tooth_number(tooth_number)
    status = classify_initial_status(primary_diagnosis, recommended_treatment)
    current = store.get_current_tooth_record(patient_id, tooth)
    record = ToothRecordData(
        patient_id=patient_id,
        tooth_number=tooth,
        status=status,
        color_code=color_of(status),
        primary_diagnosis=primary_diagnosis,
        recommended_treatment=recommended_treatment,
        follow_up_required=follow_up_required,
        source_consultation_id=source_consultation_id,
        updated_at=next_updated_at(current, now or utc_now()),
    )
    return store.append_tooth_record(record)


def plan_treatment_from_diagnosis(
    store: ChartStore,
    record: ToothRecordData,
    *,
    treatment_type: str | None = None,
) -> TreatmentData:
    if record.id is None:
        raise InvalidReferenceError("tooth_record", None, "diagnosis must be stored first")
    return store.create_treatment(
        TreatmentData(
            patient_id=record.patient_id,
            consultation_id=record.source_consultation_id,
            tooth_diagnosis_id=record.id,
            tooth_number=record.tooth_number,
            treatment_type=treatment_type or record.recommended_treatment,
            status=TreatmentStatus.pending,
            planned_status=PLANNED_STATUS_ON_CREATE,
        )
    )


def summarize_chart(records: Iterable[ToothRecordData]) -> dict[str, int]:
    counts: Counter[str] = Counter()
    total = 0
    for record in records:
        total += 1
        if record.status == ToothStatus.healthy:
            counts["healthy"] += 1
        elif record.status == ToothStatus.caries:
            counts["caries"] += 1
        elif record.status in _RESTORATION_STATUSES:
            counts["restorations"] += 1
        elif record.status in _ATTENTION_STATUSES:
            counts["attention"] += 1
        elif record.status == ToothStatus.missing:
            counts["missing"] += 1
    return {
        "healthy": counts["healthy"],
        "caries": counts["caries"],
        "restorations": counts["restorations"],
        "attention": counts["attention"],
        "missing": counts["missing"],
        "total": total,
    }
