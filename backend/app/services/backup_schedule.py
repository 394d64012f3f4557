"""
Backup schedule: a single persisted row checked against wall-clock time.

There is no in-process timer. An external cron calls POST /tasks/scheduled-backup,
which runs a backup when the schedule is due and then moves next_run forward.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.models.backup import BackupSchedule
from app.models.enums import BackupFrequency, BackupKind
from app.schemas.backup import ScheduledBackupOut
from app.services.backups import create_backup
from app.services.sharepoint import GraphDriveClient, UploadFailed
from app.services.users import find_backup_operator

logger = logging.getLogger(__name__)


def as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def compute_next_run(now: dt.datetime, frequency: BackupFrequency | str) -> dt.datetime:
    frequency = BackupFrequency(frequency)
    now = as_utc(now)
    if frequency == BackupFrequency.EVERY_10_MIN:
        return now + dt.timedelta(minutes=10)
    if frequency == BackupFrequency.EVERY_30_MIN:
        return now + dt.timedelta(minutes=30)
    if frequency == BackupFrequency.HOURLY:
        return now + dt.timedelta(hours=1)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if frequency == BackupFrequency.DAILY:
        return midnight + dt.timedelta(days=1)
    return midnight + dt.timedelta(days=7)


def schedule_next_run(now: dt.datetime, frequency: BackupFrequency | str, start_time: dt.datetime | None) -> dt.datetime:
    if start_time is not None and as_utc(start_time) > as_utc(now):
        return as_utc(start_time)
    return compute_next_run(now, frequency)


def is_backup_due(schedule: BackupSchedule | None, now: dt.datetime) -> bool:
    if schedule is None or not schedule.enabled:
        return False
    if schedule.next_run is None:
        return True
    return as_utc(schedule.next_run) <= as_utc(now)


def get_schedule(db: Session) -> BackupSchedule | None:
    return db.scalar(select(BackupSchedule).order_by(BackupSchedule.created_at.desc(), BackupSchedule.id.desc()))


def upsert_schedule(
    db: Session,
    *,
    enabled: bool,
    frequency: BackupFrequency,
    start_time: dt.datetime | None,
    user_id: str | None,
    now: dt.datetime | None = None,
) -> BackupSchedule:
    now = now or dt.datetime.now(dt.timezone.utc)
    next_run = schedule_next_run(now, frequency, start_time) if enabled else None

    schedule = get_schedule(db)
    if schedule is None:
        schedule = BackupSchedule(created_by=user_id)
        db.add(schedule)
    schedule.enabled = enabled
    schedule.frequency = frequency.value
    schedule.start_time = start_time
    schedule.next_run = next_run
    db.commit()
    db.refresh(schedule)
    logger.info("Backup schedule set: enabled=%s frequency=%s next_run=%s", enabled, frequency.value, next_run)
    return schedule


def delete_schedules(db: Session) -> int:
    deleted = db.execute(delete(BackupSchedule)).rowcount
    db.commit()
    return deleted


def mark_schedule_ran(db: Session, schedule: BackupSchedule, now: dt.datetime) -> BackupSchedule:
    schedule.last_run = now
    schedule.next_run = compute_next_run(now, schedule.frequency)
    db.commit()
    db.refresh(schedule)
    return schedule


def run_scheduled_backup(
    db: Session,
    *,
    graph_client_factory: Callable[[str], GraphDriveClient],
    force: bool = False,
    now: dt.datetime | None = None,
) -> ScheduledBackupOut:
    now = now or dt.datetime.now(dt.timezone.utc)
    schedule = get_schedule(db)
    if not force and not is_backup_due(schedule, now):
        return ScheduledBackupOut(
            success=True,
            message="Scheduled backup not due",
            next_run=schedule.next_run if schedule else None,
        )

    operator = find_backup_operator(db)
    if operator is None:
        logger.error("Scheduled backup: no admin user with Microsoft SSO found")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No admin user with Microsoft SSO found for SharePoint upload",
        )

    logger.info("Scheduled backup: starting data export")
    with graph_client_factory(operator.access_token) as client:
        outcome = create_backup(db, user=operator, kind=BackupKind.SCHEDULED, graph_client=client, now=now)

    if isinstance(outcome.upload, UploadFailed):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Backup created but SharePoint upload failed", "details": outcome.upload.error},
        )

    next_run = None
    if schedule is not None:
        next_run = mark_schedule_ran(db, schedule, now).next_run
    return ScheduledBackupOut(
        success=True,
        message="Scheduled backup completed and uploaded to SharePoint",
        file_name=outcome.file_name,
        sharepoint_url=outcome.cloud_item.web_url if outcome.cloud_item else None,
        size=len(outcome.content),
        next_run=next_run,
    )
