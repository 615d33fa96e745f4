from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from chart_sync.core.settings import settings
from chart_sync.db.session import get_db
from chart_sync.deps import get_chart_store, get_correction_sink
from chart_sync.models.tooth_correction import ToothCorrection
from chart_sync.schemas.audit import ToothAuditReportOut, ToothAuditRequest, ToothCorrectionOut
from chart_sync.services.auditor import run_consistency_audit
from chart_sync.services.corrections import CorrectionSink
from chart_sync.services.store import ChartStore

router = APIRouter(prefix="/audit", tags=["audit"])


@router.post("/tooth-records", response_model=ToothAuditReportOut)
def run_tooth_audit(
    payload: ToothAuditRequest,
    store: ChartStore = Depends(get_chart_store),
    sink: CorrectionSink = Depends(get_correction_sink),
):
    report = run_consistency_audit(
        store,
        sink,
        patient_ids=payload.patient_ids,
        batch_size=payload.batch_size or settings.audit_batch_size,
        dry_run=payload.dry_run,
    )
    return ToothAuditReportOut.model_validate(report)


@router.get("/tooth-corrections", response_model=list[ToothCorrectionOut])
def list_tooth_corrections(
    db: Session = Depends(get_db),
    patient_id: int | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
):
    stmt = select(ToothCorrection)
    if patient_id is not None:
        stmt = stmt.where(ToothCorrection.patient_id == patient_id)
    stmt = stmt.order_by(ToothCorrection.created_at.desc(), ToothCorrection.id.desc()).limit(limit)
    return list(db.scalars(stmt))
