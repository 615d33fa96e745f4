from typing import Iterator

from chart_sync.core.settings import settings
from chart_sync.db.session import SessionLocal
from chart_sync.services.corrections import CorrectionSink, DatabaseCorrectionSink
from chart_sync.services.notifications import ToothChangePublisher, build_publisher
from chart_sync.services.store import ChartStore, SqlAlchemyChartStore


def get_chart_store() -> ChartStore:
    return SqlAlchemyChartStore(SessionLocal)


def get_publisher() -> Iterator[ToothChangePublisher]:
    publisher = build_publisher(settings, SessionLocal)
    try:
        yield publisher
    finally:
        publisher.close()


def get_correction_sink() -> CorrectionSink:
    return DatabaseCorrectionSink(SessionLocal)
