"""Celery tasks for scheduled notification delivery."""
from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger

from pushhub.celery_app import celery_app
from pushhub.db.session import SessionLocal
from pushhub.services.push_transport import FirebaseTransport, PushTransport
from pushhub.services.scheduler import SchedulerSweep


def build_transport() -> PushTransport:
    return FirebaseTransport.from_settings()


@celery_app.task(name="pushhub.tasks.notifications.process_scheduled_notifications")
def process_scheduled_notifications(now: str | None = None) -> dict[str, object]:
    """Send every SCHEDULED notification whose time has come."""

    sweep_time = datetime.fromisoformat(now) if now else datetime.now(timezone.utc)
    db = SessionLocal()
    transport = build_transport()
    transport.open()

    try:
        processed = SchedulerSweep(db, transport).sweep_due(sweep_time)
        return {"processed": processed, "now": sweep_time.isoformat()}
    except Exception as exc:
        db.rollback()
        logger.error("Scheduled notification sweep failed", error=str(exc))
        raise
    finally:
        transport.close()
        db.close()
