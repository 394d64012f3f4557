from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.db.session import get_db
from app.models.enums import AuditAction
from app.models.user import User
from app.schemas.backup import BackupScheduleEnvelope, BackupScheduleIn, BackupScheduleOut
from app.services.audit import record_event
from app.services.backup_schedule import delete_schedules, get_schedule, upsert_schedule

router = APIRouter()


def _envelope(schedule) -> BackupScheduleEnvelope:  # noqa: ANN001
    if schedule is None:
        return BackupScheduleEnvelope(schedule=None)
    return BackupScheduleEnvelope(schedule=BackupScheduleOut.model_validate(schedule))


@router.get("", response_model=BackupScheduleEnvelope)
def read_schedule(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _envelope(get_schedule(db))


@router.post("", response_model=BackupScheduleEnvelope)
def save_schedule(payload: BackupScheduleIn, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    schedule = upsert_schedule(
        db,
        enabled=payload.enabled,
        frequency=payload.frequency,
        start_time=payload.start_time,
        user_id=user.id,
    )
    record_event(
        db,
        AuditAction.SCHEDULE_UPDATE,
        target_type="backup_schedule",
        target_id=schedule.id,
        actor_id=user.id,
        details={"enabled": schedule.enabled, "frequency": schedule.frequency},
    )
    return _envelope(schedule)


@router.delete("")
def remove_schedule(db: Session = Depends(get_db), user: User = Depends(require_admin)):
    deleted = delete_schedules(db)
    record_event(db, AuditAction.SCHEDULE_DELETE, target_type="backup_schedule", actor_id=user.id)
    return {"success": True, "deleted": deleted}
