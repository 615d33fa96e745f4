import logging

from fastapi import APIRouter, Depends, HTTPException, status

from chart_sync.deps import get_chart_store
from chart_sync.schemas.tooth_record import (
    ToothChartSummaryOut,
    ToothDiagnosisCreate,
    ToothDiagnosisOut,
    ToothRecordOut,
)
from chart_sync.services.errors import InvalidReferenceError, StoreError
from chart_sync.services.store import ChartStore
from chart_sync.services.tooth_records import (
    plan_treatment_from_diagnosis,
    record_tooth_diagnosis,
    summarize_chart,
)
from chart_sync.services.tooth_status import normalize_tooth_number

router = APIRouter(prefix="/patients/{patient_id}/teeth", tags=["teeth"])
logger = logging.getLogger("chart_sync.teeth")


def _tooth_or_400(tooth_number: str) -> str:
    try:
        return normalize_tooth_number(tooth_number)
    except InvalidReferenceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("", response_model=list[ToothRecordOut])
def list_current_teeth(patient_id: int, store: ChartStore = Depends(get_chart_store)):
    return store.list_current_tooth_records([patient_id])


@router.get("/summary", response_model=ToothChartSummaryOut)
def get_chart_summary(patient_id: int, store: ChartStore = Depends(get_chart_store)):
    return summarize_chart(store.list_current_tooth_records([patient_id]))


@router.get("/{tooth_number}/history", response_model=list[ToothRecordOut])
def get_tooth_history(
    patient_id: int,
    tooth_number: str,
    store: ChartStore = Depends(get_chart_store),
):
    tooth = _tooth_or_400(tooth_number)
    return store.list_tooth_history(patient_id, tooth)


@router.post("", response_model=ToothDiagnosisOut, status_code=status.HTTP_201_CREATED)
def create_tooth_diagnosis(
    patient_id: int,
    payload: ToothDiagnosisCreate,
    store: ChartStore = Depends(get_chart_store),
):
    _tooth_or_400(payload.tooth_number)
    try:
        record = record_tooth_diagnosis(
            store,
            patient_id=patient_id,
            tooth_number=payload.tooth_number,
            primary_diagnosis=payload.primary_diagnosis,
            recommended_treatment=payload.recommended_treatment,
            follow_up_required=payload.follow_up_required,
            source_consultation_id=payload.source_consultation_id,
        )
        treatment_id = None
        if payload.plan_treatment:
            treatment_id = plan_treatment_from_diagnosis(store, record).id
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Tooth {payload.tooth_number} diagnosis could not be saved",
        )
    logger.info(
        "Tooth diagnosis recorded",
        extra={
            "patient_id": patient_id,
            "tooth_number": record.tooth_number,
            "status": record.status.value,
            "treatment_id": treatment_id,
        },
    )
    return ToothDiagnosisOut(record=ToothRecordOut.model_validate(record), treatment_id=treatment_id)
