from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from chart_sync.models.appointment import AppointmentStatus
from chart_sync.models.tooth_record import ToothStatus
from chart_sync.services.errors import ChartSyncError, InvalidReferenceError
from chart_sync.services.notifications import ToothChangePublisher
from chart_sync.services.store import ChartStore
from chart_sync.services.tooth_records import next_updated_at, successor_record, utc_now
from chart_sync.services.tooth_status import color_of, is_valid_fdi_tooth_number
from chart_sync.services.transitions import next_tooth_status, treatment_status_for
from chart_sync.services.types import (
    AppointmentData,
    AppointmentToothLinkData,
    ToothRecordData,
    TreatmentData,
)

logger = logging.getLogger("chart_sync.cascade")

OUTCOME_UPDATED = "updated"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_FAILED = "failed"

REASON_INVALID_REFERENCE = "invalid_reference"
REASON_STORE_ERROR = "store_error"
REASON_TIMEOUT = "timeout"


@dataclass
class ToothOutcome:
    tooth_number: str
    outcome: str
    link_id: int | None = None
    previous_status: str | None = None
    status: str | None = None
    color_code: str | None = None
    reason: str | None = None
    detail: str | None = None


@dataclass
class CascadeResult:
    appointment_id: int
    patient_id: int
    appointment_status: AppointmentStatus
    treatment_id: int | None = None
    treatment_status: str | None = None
    treatment_error: str | None = None
    succeeded: list[ToothOutcome] = field(default_factory=list)
    failed: list[ToothOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and self.treatment_error is None

    @property
    def updated_count(self) -> int:
        return sum(1 for item in self.succeeded if item.outcome == OUTCOME_UPDATED)

    @property
    def user_message(self) -> str | None:
        if not self.failed:
            return None
        teeth = ", ".join(f"{item.tooth_number} ({item.reason})" for item in self.failed)
        return (
            f"Tooth status could not be updated for appointment {self.appointment_id}: "
            f"teeth {teeth}"
        )


def _failed(
    link: AppointmentToothLinkData, reason: str, detail: str | None = None
) -> ToothOutcome:
    return ToothOutcome(
        tooth_number=str(link.tooth_number),
        link_id=link.id,
        outcome=OUTCOME_FAILED,
        reason=reason,
        detail=detail,
    )


def _validate_link(link: AppointmentToothLinkData, appointment: AppointmentData) -> None:
    if link.appointment_id != appointment.id:
        raise InvalidReferenceError(
            "appointment_tooth_link", link.id, f"belongs to appointment {link.appointment_id}"
        )
    if not is_valid_fdi_tooth_number(link.tooth_number):
        raise InvalidReferenceError(
            "appointment_tooth_link", link.id, f"tooth number {link.tooth_number!r} is not FDI"
        )


def _load_treatment(
    store: ChartStore, appointment: AppointmentData, result: CascadeResult
) -> TreatmentData | None:
    treatment_id = appointment.linked_treatment_id
    if treatment_id is None:
        return None
    result.treatment_id = treatment_id
    try:
        treatment = store.get_treatment(treatment_id)
        if treatment is None:
            raise InvalidReferenceError("treatment", treatment_id, "treatment not found")
        if treatment.patient_id != appointment.patient_id:
            raise InvalidReferenceError(
                "treatment", treatment_id, "treatment belongs to another patient"
            )
        if treatment.tooth_number and not is_valid_fdi_tooth_number(treatment.tooth_number):
            raise InvalidReferenceError(
                "treatment", treatment_id, f"tooth number {treatment.tooth_number!r} is not FDI"
            )
    except InvalidReferenceError as exc:
        result.treatment_error = REASON_INVALID_REFERENCE
        logger.warning(
            "Appointment treatment link rejected",
            extra={
                "appointment_id": appointment.id,
                "patient_id": appointment.patient_id,
                "treatment_id": treatment_id,
                "detail": exc.detail,
            },
        )
        return None
    except ChartSyncError as exc:
        result.treatment_error = REASON_STORE_ERROR
        logger.warning(
            "Treatment load failed",
            extra={"appointment_id": appointment.id, "treatment_id": treatment_id, "error": str(exc)},
        )
        return None
    return treatment


def _mirror_treatment_status(
    store: ChartStore,
    appointment: AppointmentData,
    treatment: TreatmentData,
    result: CascadeResult,
) -> None:
    mirrored = treatment_status_for(appointment.status)
    try:
        updated = store.update_treatment_status(treatment.id, mirrored)
    except ChartSyncError as exc:
        result.treatment_error = REASON_STORE_ERROR
        logger.warning(
            "Treatment status mirror failed",
            extra={
                "appointment_id": appointment.id,
                "treatment_id": treatment.id,
                "error": str(exc),
            },
        )
        return
    result.treatment_status = updated.status.value


def _publish(publisher: ToothChangePublisher, record: ToothRecordData) -> None:
    try:
        publisher.publish(
            record.patient_id, record.tooth_number, record.status.value, record.color_code
        )
    except Exception as exc:
        logger.warning(
            "Tooth change notification failed",
            extra={
                "patient_id": record.patient_id,
                "tooth_number": record.tooth_number,
                "error": str(exc),
            },
        )


def _sync_tooth(
    store: ChartStore,
    publisher: ToothChangePublisher,
    appointment: AppointmentData,
    link: AppointmentToothLinkData,
    treatment_type: str | None,
    now: datetime,
) -> ToothOutcome:
    tooth = link.tooth_number.strip()
    current = store.get_current_tooth_record(appointment.patient_id, tooth)
    prior = current.status if current is not None else None
    status = next_tooth_status(appointment.status, treatment_type, prior)

    if current is not None and current.status == status:
        return ToothOutcome(
            tooth_number=tooth,
            link_id=link.id,
            outcome=OUTCOME_UNCHANGED,
            previous_status=prior.value,
            status=status.value,
            color_code=current.color_code,
        )

    if current is not None:
        record = successor_record(current, status, now)
    else:
        record = ToothRecordData(
            patient_id=appointment.patient_id,
            tooth_number=tooth,
            status=status,
            color_code=color_of(status),
            primary_diagnosis=link.diagnosis_note,
            updated_at=next_updated_at(None, now),
        )
    stored = store.append_tooth_record(record)
    _publish(publisher, stored)
    return ToothOutcome(
        tooth_number=tooth,
        link_id=link.id,
        outcome=OUTCOME_UPDATED,
        previous_status=prior.value if prior is not None else None,
        status=stored.status.value,
        color_code=stored.color_code,
    )


@dataclass
class _ToothRun:
    link: AppointmentToothLinkData
    started: threading.Event = field(default_factory=threading.Event)
    started_at: float = 0.0
    future: Future | None = None


def _run_timed(
    run: _ToothRun, sync: Callable[[AppointmentToothLinkData], ToothOutcome]
) -> ToothOutcome:
    run.started_at = time.monotonic()
    run.started.set()
    return sync(run.link)


def _await_tooth(run: _ToothRun, timeout: float | None) -> ToothOutcome:
    if timeout is None:
        return run.future.result()
    # The deadline counts from when a worker picks the tooth up, not from submission.
    while not run.started.wait(0.05):
        if run.future.done():
            break
    remaining = run.started_at + timeout - time.monotonic()
    return run.future.result(timeout=max(0.0, remaining))


def _run_teeth(
    links: list[AppointmentToothLinkData],
    sync: Callable[[AppointmentToothLinkData], ToothOutcome],
    *,
    max_workers: int,
    tooth_timeout_seconds: float | None,
) -> list[ToothOutcome]:
    """Sync each tooth on a worker pool and return outcomes in link order.

    A timed-out tooth keeps its worker busy, so teeth still queued behind it
    are cancelled and resubmitted to a fresh pool instead of inheriting the
    timeout.
    """
    outcomes: dict[int, ToothOutcome] = {}
    waiting = list(enumerate(links))
    while waiting:
        executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="tooth-cascade"
        )
        runs: list[tuple[int, _ToothRun]] = []
        for index, link in waiting:
            run = _ToothRun(link=link)
            run.future = executor.submit(_run_timed, run, sync)
            runs.append((index, run))
        waiting = []
        pool_blocked = False
        try:
            for index, run in runs:
                if pool_blocked and run.future.cancel():
                    waiting.append((index, run.link))
                    continue
                try:
                    outcome = _await_tooth(run, tooth_timeout_seconds)
                except FutureTimeoutError:
                    outcome = _failed(run.link, REASON_TIMEOUT, "tooth update did not finish in time")
                    pool_blocked = True
                except InvalidReferenceError as exc:
                    outcome = _failed(run.link, REASON_INVALID_REFERENCE, exc.detail)
                except ChartSyncError as exc:
                    outcome = _failed(run.link, REASON_STORE_ERROR, str(exc))
                outcomes[index] = outcome
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
    return [outcomes[index] for index in range(len(links))]


def propagate_appointment_status(
    store: ChartStore,
    publisher: ToothChangePublisher,
    appointment_id: int,
    *,
    now: datetime | None = None,
    max_workers: int = 1,
    tooth_timeout_seconds: float | None = None,
) -> CascadeResult:
    """Push an appointment's current status into its treatment and linked teeth.

    Teeth are processed independently; a failure on one tooth is reported in
    ``failed`` and never undoes records already appended for the others.
    Safe to re-run: teeth already at their target status are left alone.
    """
    appointment = store.get_appointment(appointment_id)
    if appointment is None:
        logger.warning("Cascade requested for unknown appointment", extra={"appointment_id": appointment_id})
        raise InvalidReferenceError("appointment", appointment_id, "appointment not found")

    now = now or utc_now()
    result = CascadeResult(
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
        appointment_status=appointment.status,
    )

    treatment = _load_treatment(store, appointment, result)
    if treatment is not None:
        _mirror_treatment_status(store, appointment, treatment, result)

    links: list[AppointmentToothLinkData] = []
    for link in store.get_linked_teeth(appointment.id):
        try:
            _validate_link(link, appointment)
        except InvalidReferenceError as exc:
            logger.warning(
                "Appointment tooth link rejected",
                extra={
                    "appointment_id": appointment.id,
                    "patient_id": appointment.patient_id,
                    "link_id": link.id,
                    "tooth_number": link.tooth_number,
                    "detail": exc.detail,
                },
            )
            result.failed.append(_failed(link, REASON_INVALID_REFERENCE, exc.detail))
            continue
        links.append(link)

    def sync(link: AppointmentToothLinkData) -> ToothOutcome:
        treatment_type = (
            treatment.treatment_type if treatment is not None else link.diagnosis_note
        )
        return _sync_tooth(store, publisher, appointment, link, treatment_type, now)

    outcomes = _run_teeth(
        links,
        sync,
        max_workers=max_workers,
        tooth_timeout_seconds=tooth_timeout_seconds,
    )
    for outcome in outcomes:
        if outcome.outcome == OUTCOME_FAILED:
            logger.warning(
                "Tooth cascade failed",
                extra={
                    "appointment_id": appointment.id,
                    "patient_id": appointment.patient_id,
                    "tooth_number": outcome.tooth_number,
                    "reason": outcome.reason,
                    "detail": outcome.detail,
                },
            )
            result.failed.append(outcome)
        else:
            result.succeeded.append(outcome)

    logger.info(
        "Appointment cascade finished",
        extra={
            "appointment_id": appointment.id,
            "appointment_status": appointment.status.value,
            "teeth_updated": result.updated_count,
            "teeth_unchanged": len(result.succeeded) - result.updated_count,
            "teeth_failed": len(result.failed),
            "treatment_error": result.treatment_error,
        },
    )
    return result
