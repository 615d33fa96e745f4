import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chart_sync.core.logging import configure_logging
from chart_sync.core.settings import settings, validate_settings
from chart_sync.db.session import engine
from chart_sync.models import Base
from chart_sync.routers.appointments import router as appointments_router
from chart_sync.routers.audit import router as audit_router
from chart_sync.routers.teeth import router as teeth_router

app = FastAPI(title="Dental Chart Sync API", version="0.1.0")
logger = logging.getLogger("chart_sync.startup")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)


@app.on_event("startup")
def startup():
    configure_logging(settings)
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Chart sync started (notifications=%s, cascade_workers=%s).",
        settings.notification_backend,
        settings.cascade_max_workers,
    )


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(appointments_router)
app.include_router(teeth_router)
app.include_router(audit_router)
