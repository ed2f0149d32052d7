from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.services.class_events import ClassEvent

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)


class ActivityLogObserver:
    """Writes every class event to ``activity_logs``.

    A failed log write is rolled back and logged; the class change it
    describes is already committed.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def notify(self, event: ClassEvent) -> None:
        try:
            log_activity(
                self._db,
                action=event.action,
                entity_type="class",
                entity_id=str(event.class_id),
                details=event.as_details(),
            )
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            logger.exception("ACTIVITY LOG WRITE FAILED | action=%s | class_id=%s", event.action, event.class_id)
