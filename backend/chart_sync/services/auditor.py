from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator

from chart_sync.models.tooth_record import ToothStatus
from chart_sync.services.corrections import CorrectionSink
from chart_sync.services.errors import ChartSyncError
from chart_sync.services.store import ChartStore
from chart_sync.services.tooth_records import successor_record, utc_now
from chart_sync.services.tooth_state_classification import (
    classify_final_status,
    classify_initial_status,
)
from chart_sync.services.tooth_status import color_of
from chart_sync.services.types import ToothCorrectionEntry, ToothRecordData, ToothState

logger = logging.getLogger("chart_sync.audit")

CORRECTION_REASON = "audit"
DEFAULT_BATCH_SIZE = 100


def expected_status(record: ToothRecordData) -> ToothStatus:
    status = classify_initial_status(record.primary_diagnosis, record.recommended_treatment)
    if record.treatment_provided and record.treatment_provided.strip():
        final_status = classify_final_status(record.treatment_provided)
        if final_status is not None:
            status = final_status
    return status


def plan_correction(record: ToothRecordData) -> ToothCorrectionEntry | None:
    status = expected_status(record)
    color = color_of(status)
    if record.status == status and record.color_code == color:
        return None
    return ToothCorrectionEntry(
        tooth_number=record.tooth_number,
        patient_id=record.patient_id,
        from_state=ToothState(status=record.status.value, color=record.color_code),
        to_state=ToothState(status=status.value, color=color),
        reason=CORRECTION_REASON,
    )


@dataclass
class AuditReport:
    dry_run: bool = False
    cancelled: bool = False
    shards_total: int = 0
    shards_completed: int = 0
    patients_scanned: int = 0
    records_scanned: int = 0
    corrections: list[ToothCorrectionEntry] = field(default_factory=list)
    failures: list[dict[str, object]] = field(default_factory=list)
    log_failures: list[dict[str, object]] = field(default_factory=list)
    transitions: Counter[str] = field(default_factory=Counter)

    @property
    def corrections_count(self) -> int:
        return len(self.corrections)

    def finalize(self) -> dict[str, object]:
        return {
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "shards_total": self.shards_total,
            "shards_completed": self.shards_completed,
            "patients_scanned": self.patients_scanned,
            "records_scanned": self.records_scanned,
            "corrections_count": self.corrections_count,
            "corrections": [entry.model_dump(by_alias=True) for entry in self.corrections],
            "failures": list(self.failures),
            "log_failures": list(self.log_failures),
            "transitions": dict(self.transitions),
        }


def _shards(patient_ids: list[int], batch_size: int) -> Iterator[list[int]]:
    for start in range(0, len(patient_ids), batch_size):
        yield patient_ids[start : start + batch_size]


def _apply_correction(
    store: ChartStore,
    record: ToothRecordData,
    entry: ToothCorrectionEntry,
    now: datetime,
) -> ToothCorrectionEntry:
    corrected = successor_record(record, ToothStatus(entry.to_state.status), now)
    stored = store.append_tooth_record(corrected)
    return entry.model_copy(update={"tooth_record_id": stored.id})


def _log_correction(
    sink: CorrectionSink, entry: ToothCorrectionEntry, report: AuditReport
) -> None:
    # The correction is already appended; a failed log write is reported, not rolled back.
    try:
        sink.log_correction(entry)
    except ChartSyncError as exc:
        payload = entry.model_dump(by_alias=True)
        report.log_failures.append({**payload, "error": str(exc)})
        logger.error(
            "Tooth correction applied but not logged",
            extra={**payload, "error": str(exc)},
        )


def run_consistency_audit(
    store: ChartStore,
    sink: CorrectionSink,
    *,
    patient_ids: Iterable[int] | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
    cancel_event: threading.Event | None = None,
    now: datetime | None = None,
) -> AuditReport:
    """Recompute status and colour for every current tooth record and fix drift.

    Records are independent, so the sweep is sharded by patient and can be
    stopped between shards through ``cancel_event``. Every applied correction
    is a single append, which keeps a partially completed sweep valid.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    now = now or utc_now()
    if patient_ids is None:
        ids = store.list_patient_ids_with_records()
    else:
        ids = sorted(set(patient_ids))

    shards = list(_shards(ids, batch_size))
    report = AuditReport(dry_run=dry_run, shards_total=len(shards))

    for shard in shards:
        if cancel_event is not None and cancel_event.is_set():
            report.cancelled = True
            logger.info(
                "Tooth audit cancelled",
                extra={"shards_completed": report.shards_completed, "shards_total": report.shards_total},
            )
            break

        records = store.list_current_tooth_records(shard)
        report.patients_scanned += len(shard)
        for record in records:
            report.records_scanned += 1
            entry = plan_correction(record)
            if entry is None:
                continue
            if not dry_run:
                try:
                    entry = _apply_correction(store, record, entry, now)
                except ChartSyncError as exc:
                    report.failures.append(
                        {
                            "patient_id": record.patient_id,
                            "tooth_number": record.tooth_number,
                            "error": str(exc),
                        }
                    )
                    logger.warning(
                        "Tooth audit correction failed",
                        extra={
                            "patient_id": record.patient_id,
                            "tooth_number": record.tooth_number,
                            "error": str(exc),
                        },
                    )
                    continue
                _log_correction(sink, entry, report)
            report.corrections.append(entry)
            report.transitions[f"{entry.from_state.status}->{entry.to_state.status}"] += 1
        report.shards_completed += 1

    logger.info(
        "Tooth audit finished",
        extra={
            "dry_run": dry_run,
            "records_scanned": report.records_scanned,
            "corrections_count": report.corrections_count,
            "failures": len(report.failures),
            "log_failures": len(report.log_failures),
            "cancelled": report.cancelled,
        },
    )
    return report
