from __future__ import annotations

import logging
from typing import Callable, Protocol

import httpx
from sqlalchemy.orm import Session

from chart_sync.core.settings import Settings
from chart_sync.models.tooth_change_event import ToothChangeEvent

logger = logging.getLogger("chart_sync.notifications")


class ToothChangePublisher(Protocol):
    """Best-effort, at-least-once change hint.

    Consumers re-read the tooth's current record instead of trusting the payload.
    """

    def publish(self, patient_id: int, tooth_number: str, status: str, color_code: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


def _payload(patient_id: int, tooth_number: str, status: str, color_code: str) -> dict:
    return {
        "patient_id": patient_id,
        "tooth_number": tooth_number,
        "status": status,
        "color_code": color_code,
    }


class OutboxPublisher(ToothChangePublisher):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def publish(self, patient_id: int, tooth_number: str, status: str, color_code: str) -> None:
        session = self._session_factory()
        try:
            session.add(ToothChangeEvent(**_payload(patient_id, tooth_number, status, color_code)))
            session.commit()
        finally:
            session.close()


class WebhookPublisher(ToothChangePublisher):
    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def publish(self, patient_id: int, tooth_number: str, status: str, color_code: str) -> None:
        response = self._client.post(
            self.url,
            json={"event": "tooth_status_changed", **_payload(patient_id, tooth_number, status, color_code)},
        )
        response.raise_for_status()

    def close(self) -> None:
        self._client.close()


class LoggingPublisher(ToothChangePublisher):
    def publish(self, patient_id: int, tooth_number: str, status: str, color_code: str) -> None:
        logger.info(
            "tooth_status_changed",
            extra=_payload(patient_id, tooth_number, status, color_code),
        )


def build_publisher(
    settings: Settings, session_factory: Callable[[], Session]
) -> ToothChangePublisher:
    backend = settings.notification_backend.strip().lower()
    if backend == "webhook":
        if not settings.realtime_webhook_url:
            raise RuntimeError("REALTIME_WEBHOOK_URL is required for the webhook backend.")
        return WebhookPublisher(
            settings.realtime_webhook_url,
            timeout_seconds=settings.realtime_webhook_timeout_seconds,
        )
    if backend == "log":
        return LoggingPublisher()
    return OutboxPublisher(session_factory)
