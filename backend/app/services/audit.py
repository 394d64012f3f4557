from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.audit import AuditEvent
from app.models.enums import AuditAction
from app.models.user import User

logger = logging.getLogger(__name__)

ACTION_LABELS = {
    AuditAction.LOGIN.value: "Signed in",
    AuditAction.BACKUP_EXPORT.value: "Backup created",
    AuditAction.BACKUP_RESTORE.value: "Database restored",
    AuditAction.SCHEDULE_UPDATE.value: "Backup schedule updated",
    AuditAction.SCHEDULE_DELETE.value: "Backup schedule removed",
}


def record_event(
    db: Session,
    action: AuditAction,
    *,
    target_type: str,
    target_id: str | int | None = None,
    actor_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditEvent:
    event = AuditEvent(
        action=action.value,
        target_type=target_type,
        target_id=None if target_id is None else str(target_id),
        actor_id=actor_id,
        details=details,
    )
    db.add(event)
    db.commit()
    logger.info("Audit: %s %s/%s by %s", action.value, target_type, target_id, actor_id or "-")
    return event


def recent_events(db: Session, limit: int = 20) -> list[tuple[AuditEvent, str | None]]:
    """Newest first, each paired with the actor's email (None once the actor is gone)."""
    rows = db.execute(
        select(AuditEvent, User.email)
        .outerjoin(User, AuditEvent.actor_id == User.id)
        .order_by(AuditEvent.occurred_at.desc(), AuditEvent.id.desc())
        .limit(limit)
    ).all()
    return [(event, email) for event, email in rows]
