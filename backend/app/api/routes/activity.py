"""Audit trail of admin actions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.db.session import get_db
from app.models.user import User
from app.schemas.audit import AuditEventOut
from app.services.audit import ACTION_LABELS, recent_events

router = APIRouter()


@router.get("", response_model=list[AuditEventOut])
def list_activity(
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    return [
        AuditEventOut(
            id=event.id,
            occurred_at=event.occurred_at,
            action=event.action,
            action_label=ACTION_LABELS.get(event.action, event.action),
            target_type=event.target_type,
            target_id=event.target_id,
            actor_email=email,
            details=event.details,
        )
        for event, email in recent_events(db, limit)
    ]
