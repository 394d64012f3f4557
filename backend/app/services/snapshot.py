"""
Backup snapshot pipeline.

build_snapshot -> write_archive produce a zip holding a single backup-data.json;
read_archive -> load_snapshot -> verify_restore replace every domain row with the
archive's rows and report how the result compares with the recorded counts.
"""

from __future__ import annotations

import datetime as dt
import io
import json
import logging
import zipfile
from dataclasses import dataclass

from pydantic import ValidationError
from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from app.db.session import Base
from app.models.calendar_event import CalendarEvent
from app.models.communication import Communication, MilestoneComment, StatusChange
from app.models.enums import BackupKind
from app.models.project import Milestone, Project
from app.models.project_file import ProjectFile
from app.models.template import ProjectTemplate, TemplateMilestone
from app.models.user import User
from app.schemas.backup import RestoreResult
from app.schemas.snapshot import (
    BackupData,
    BackupDocument,
    BackupMetadata,
    CalendarEventRecord,
    CommunicationRecord,
    MilestoneCommentRecord,
    MilestoneRecord,
    ProjectFileRecord,
    ProjectRecord,
    ProjectTemplateRecord,
    SnapshotRecord,
    StatusChangeRecord,
    TemplateMilestoneRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)

BACKUP_ENTRY_NAME = "backup-data.json"

ERR_ENTRY_NOT_FOUND = "Invalid backup file - backup-data.json not found"
ERR_BAD_JSON = "Invalid backup file - could not parse JSON"
ERR_MISSING_DATA = "Invalid backup file - missing data section"


class BackupFormatError(ValueError):
    """Archive rejected before any destructive step ran."""


@dataclass(frozen=True)
class EntityTable:
    key: str  # key under "data" and "metadata.counts" in backup-data.json
    field: str  # BackupData attribute
    model: type[Base]
    record: type[SnapshotRecord]


# Parent-to-child: every FK target is inserted before the rows pointing at it.
ENTITY_TABLES: tuple[EntityTable, ...] = (
    EntityTable("users", "users", User, UserRecord),
    EntityTable("templates", "templates", ProjectTemplate, ProjectTemplateRecord),
    EntityTable("templateMilestones", "template_milestones", TemplateMilestone, TemplateMilestoneRecord),
    EntityTable("projects", "projects", Project, ProjectRecord),
    EntityTable("milestones", "milestones", Milestone, MilestoneRecord),
    EntityTable("files", "files", ProjectFile, ProjectFileRecord),
    EntityTable("communications", "communications", Communication, CommunicationRecord),
    EntityTable("comments", "comments", MilestoneComment, MilestoneCommentRecord),
    EntityTable("statusChanges", "status_changes", StatusChange, StatusChangeRecord),
    EntityTable("calendarEvents", "calendar_events", CalendarEvent, CalendarEventRecord),
)

# Child-to-parent.
DELETE_ORDER: tuple[type[Base], ...] = (
    StatusChange,
    Communication,
    MilestoneComment,
    CalendarEvent,
    ProjectFile,
    Milestone,
    Project,
    TemplateMilestone,
    ProjectTemplate,
    User,
)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def build_snapshot(db: Session, *, kind: BackupKind = BackupKind.MANUAL, now: dt.datetime | None = None) -> BackupDocument:
    now = now or _utcnow()
    tables: dict[str, list[SnapshotRecord]] = {}
    for table in ENTITY_TABLES:
        rows = db.scalars(select(table.model)).all()
        tables[table.field] = [table.record.model_validate(row) for row in rows]

    data = BackupData(**tables)
    projects = data.projects
    metadata = BackupMetadata(
        counts={table.key: len(tables[table.field]) for table in ENTITY_TABLES},
        created_at=now,
        kind=kind.value,
        project_names=[p.name for p in projects],
        project_ids=[p.id for p in projects],
    )
    logger.info(
        "Backup: exported %d projects, %d users, %d milestones",
        metadata.counts["projects"],
        metadata.counts["users"],
        metadata.counts["milestones"],
    )
    return BackupDocument(timestamp=now, metadata=metadata, data=data)


def write_archive(document: BackupDocument) -> bytes:
    payload = json.dumps(document.to_json_dict(), ensure_ascii=False, indent=2).encode("utf-8")
    out = io.BytesIO()
    with zipfile.ZipFile(out, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(BACKUP_ENTRY_NAME, payload)
    return out.getvalue()


def backup_file_name(now: dt.datetime, kind: BackupKind = BackupKind.MANUAL) -> str:
    # e.g. vex-backup-2026-01-13T09-30-00-123Z.zip
    now = now.astimezone(dt.timezone.utc)
    stamp = f"{now:%Y-%m-%dT%H-%M-%S}-{now.microsecond // 1000:03d}Z"
    prefix = "vex-scheduled-backup" if kind == BackupKind.SCHEDULED else "vex-backup"
    return f"{prefix}-{stamp}.zip"


def _find_data_entry(names: list[str]) -> str | None:
    if BACKUP_ENTRY_NAME in names:
        return BACKUP_ENTRY_NAME
    for name in names:
        if name.endswith(".json"):
            return name
    return None


def _summarize_validation_error(e: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in e.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    if e.error_count() > limit:
        parts.append(f"(+{e.error_count() - limit} more)")
    return "; ".join(parts)


def read_archive(content: bytes) -> BackupDocument:
    try:
        zf = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as e:
        raise BackupFormatError(ERR_ENTRY_NOT_FOUND) from e

    with zf:
        entry = _find_data_entry(zf.namelist())
        if entry is None:
            raise BackupFormatError(ERR_ENTRY_NOT_FOUND)
        try:
            raw = zf.read(entry)
        except zipfile.BadZipFile as e:
            raise BackupFormatError(ERR_BAD_JSON) from e

    try:
        parsed = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise BackupFormatError(ERR_BAD_JSON) from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("data"), dict):
        raise BackupFormatError(ERR_MISSING_DATA)

    try:
        document = BackupDocument.model_validate(parsed)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup file - invalid records: {_summarize_validation_error(e)}") from e

    logger.info("Restore: parsed %s, backup contains %s projects", entry, document.metadata.counts.get("projects", "?"))
    return document


def load_snapshot(db: Session, document: BackupDocument, *, atomic: bool = False) -> None:
    """
    Replace all domain rows with the document's rows.

    Deletes run child-to-parent and all finish before the first insert; inserts run
    parent-to-child. Without `atomic` every step commits on its own, so a failure
    partway leaves some tables restored and others empty.
    """
    try:
        for model in DELETE_ORDER:
            deleted = db.execute(delete(model).execution_options(synchronize_session=False)).rowcount
            logger.debug("Restore: cleared %s (%s rows)", model.__tablename__, deleted)
            if not atomic:
                db.commit()
        logger.info("Restore: existing data cleared")

        for table in ENTITY_TABLES:
            records = getattr(document.data, table.field)
            if not records:
                continue
            db.execute(insert(table.model), [r.to_row() for r in records])
            logger.info("Restore: imported %d %s", len(records), table.key)
            if not atomic:
                db.commit()

        if atomic:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.expire_all()


def count_rows(db: Session) -> dict[str, int]:
    return {table.key: db.scalar(select(func.count()).select_from(table.model)) or 0 for table in ENTITY_TABLES}


def verify_restore(db: Session, document: BackupDocument) -> RestoreResult:
    """
    Compare live row counts with the counts recorded at backup time.
    Reporting only: a mismatch never undoes the load.
    """
    restored = count_rows(db)
    backup_counts = dict(document.metadata.counts)
    logger.info(
        "Restore: restored %d projects, %d users, %d milestones",
        restored["projects"],
        restored["users"],
        restored["milestones"],
    )

    expected_projects = backup_counts.get("projects")
    if expected_projects is not None and restored["projects"] != expected_projects:
        logger.warning("Restore: project count mismatch (expected %d, got %d)", expected_projects, restored["projects"])
        return RestoreResult(
            success=False,
            message=f"Data mismatch: Backup had {expected_projects} projects, but restore shows {restored['projects']}",
            restored_counts=restored,
            backup_counts=backup_counts,
        )

    names = db.scalars(select(Project.name).order_by(Project.name)).all()
    return RestoreResult(
        success=True,
        message="Database restored successfully",
        restored_counts=restored,
        restored_projects=list(names),
        backup_counts=backup_counts,
    )
