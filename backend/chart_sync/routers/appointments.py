from fastapi import APIRouter, Depends, HTTPException, status

from chart_sync.core.settings import settings
from chart_sync.deps import get_chart_store, get_publisher
from chart_sync.schemas.appointment import AppointmentStatusUpdate, CascadeResultOut
from chart_sync.services.cascade import propagate_appointment_status
from chart_sync.services.errors import InvalidReferenceError, StoreError
from chart_sync.services.notifications import ToothChangePublisher
from chart_sync.services.store import ChartStore

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _tooth_timeout() -> float | None:
    timeout = settings.cascade_tooth_timeout_seconds
    return timeout if timeout > 0 else None


def _run_cascade(
    store: ChartStore, publisher: ToothChangePublisher, appointment_id: int
) -> CascadeResultOut:
    try:
        result = propagate_appointment_status(
            store,
            publisher,
            appointment_id,
            max_workers=settings.cascade_max_workers,
            tooth_timeout_seconds=_tooth_timeout(),
        )
    except InvalidReferenceError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Tooth status could not be updated for appointment {appointment_id}",
        )
    return CascadeResultOut.model_validate(result)


@router.post("/{appointment_id}/status", response_model=CascadeResultOut)
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    store: ChartStore = Depends(get_chart_store),
    publisher: ToothChangePublisher = Depends(get_publisher),
):
    try:
        store.set_appointment_status(appointment_id, payload.status)
    except InvalidReferenceError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return _run_cascade(store, publisher, appointment_id)


@router.post("/{appointment_id}/cascade", response_model=CascadeResultOut)
def rerun_appointment_cascade(
    appointment_id: int,
    store: ChartStore = Depends(get_chart_store),
    publisher: ToothChangePublisher = Depends(get_publisher),
):
    return _run_cascade(store, publisher, appointment_id)
