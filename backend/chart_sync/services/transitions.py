from __future__ import annotations

from chart_sync.models.appointment import AppointmentStatus
from chart_sync.models.tooth_record import ToothStatus
from chart_sync.models.treatment import TreatmentStatus
from chart_sync.services.tooth_state_classification import (
    classify_final_status,
    classify_initial_status,
)

TREATMENT_STATUS_BY_APPOINTMENT: dict[AppointmentStatus, TreatmentStatus] = {
    AppointmentStatus.scheduled: TreatmentStatus.pending,
    AppointmentStatus.confirmed: TreatmentStatus.pending,
    AppointmentStatus.in_progress: TreatmentStatus.in_progress,
    AppointmentStatus.completed: TreatmentStatus.completed,
    AppointmentStatus.cancelled: TreatmentStatus.cancelled,
    AppointmentStatus.no_show: TreatmentStatus.cancelled,
}


def parse_appointment_status(value: AppointmentStatus | str) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unknown appointment status: {value!r}") from exc


def treatment_status_for(appointment_status: AppointmentStatus | str) -> TreatmentStatus:
    return TREATMENT_STATUS_BY_APPOINTMENT[parse_appointment_status(appointment_status)]


def next_tooth_status(
    appointment_status: AppointmentStatus | str,
    treatment_type: str | None,
    original_status: ToothStatus | None,
) -> ToothStatus:
    """Tooth status implied by an appointment reaching ``appointment_status``.

    In-progress work always flags the tooth. Scheduled or confirmed work keeps
    an existing finding; cancelled or missed visits fall back to it.
    """
    appointment_status = parse_appointment_status(appointment_status)
    has_treatment = bool(treatment_type and treatment_type.strip())

    if appointment_status in (AppointmentStatus.scheduled, AppointmentStatus.confirmed):
        if original_status is not None and original_status != ToothStatus.healthy:
            return original_status
        if has_treatment:
            mapped = classify_initial_status(treatment_type, "")
            return mapped if mapped != ToothStatus.healthy else ToothStatus.attention
        return ToothStatus.attention

    if appointment_status == AppointmentStatus.in_progress:
        return ToothStatus.attention

    if appointment_status == AppointmentStatus.completed:
        if has_treatment:
            final_status = classify_final_status(treatment_type)
            if final_status is not None:
                return final_status
        return ToothStatus.healthy

    return original_status if original_status is not None else ToothStatus.attention
