from __future__ import annotations

import datetime as dt
import hashlib
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.backup import BackupRecord
from app.models.enums import AuditAction, BackupKind
from app.models.user import User
from app.schemas.backup import RestoreResult
from app.services.audit import record_event
from app.services.sharepoint import CloudItem, GraphDriveClient, UploadOk, UploadResult, upload_backup_result
from app.services.snapshot import (
    backup_file_name,
    build_snapshot,
    load_snapshot,
    read_archive,
    verify_restore,
    write_archive,
)

logger = logging.getLogger(__name__)


class RestoreLoadError(RuntimeError):
    """The destructive load failed partway; the database may be partially restored."""


@dataclass(frozen=True)
class BackupOutcome:
    content: bytes
    file_name: str
    sha256: str
    record: BackupRecord
    upload: UploadResult | None

    @property
    def cloud_item(self) -> CloudItem | None:
        if isinstance(self.upload, UploadOk):
            return self.upload.item
        return None


def create_backup(
    db: Session,
    *,
    user: User | None,
    kind: BackupKind = BackupKind.MANUAL,
    graph_client: GraphDriveClient | None = None,
    now: dt.datetime | None = None,
) -> BackupOutcome:
    """
    Snapshot every domain table into a zip. With a graph client the zip is also pushed
    to SharePoint; an upload failure only means the outcome carries no cloud item.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    document = build_snapshot(db, kind=kind, now=now)
    content = write_archive(document)
    file_name = backup_file_name(now, kind)
    sha256 = hashlib.sha256(content).hexdigest()
    logger.info("Backup: created %s (%d bytes)", file_name, len(content))

    upload: UploadResult | None = None
    if graph_client is not None:
        upload = upload_backup_result(graph_client, content, file_name)

    cloud = upload.item if isinstance(upload, UploadOk) else None
    rec = BackupRecord(
        created_by_user_id=user.id if user else None,
        kind=kind.value,
        file_name=file_name,
        sha256=sha256,
        size_bytes=len(content),
        rows_total=sum(document.metadata.counts.values()),
        sharepoint_id=cloud.id if cloud else None,
        sharepoint_url=cloud.web_url if cloud else None,
    )
    db.add(rec)
    db.commit()
    db.refresh(rec)

    details = {"file_name": file_name, "size_bytes": len(content), "kind": kind.value}
    if upload is not None:
        details["sharepoint_uploaded"] = cloud is not None
    record_event(
        db,
        AuditAction.BACKUP_EXPORT,
        target_type="backup",
        target_id=rec.id,
        actor_id=user.id if user else None,
        details=details,
    )
    return BackupOutcome(content=content, file_name=file_name, sha256=sha256, record=rec, upload=upload)


def restore_from_archive(db: Session, content: bytes, *, user: User | None, source: str) -> RestoreResult:
    """
    Validate the archive, then wipe and reload the domain tables and verify counts.
    BackupFormatError is raised before anything is deleted.
    """
    actor_id = user.id if user else None
    document = read_archive(content)

    logger.info("Restore: starting data import from %s", source)
    try:
        load_snapshot(db, document, atomic=settings.restore_atomic)
    except SQLAlchemyError as e:
        logger.exception("Restore: error during data import")
        raise RestoreLoadError(str(e)) from e

    result = verify_restore(db, document)

    # The restoring admin may not exist in the restored user table.
    if actor_id is not None and db.scalar(select(User.id).where(User.id == actor_id)) is None:
        actor_id = None
    record_event(
        db,
        AuditAction.BACKUP_RESTORE,
        target_type="backup",
        actor_id=actor_id,
        details={"source": source, "success": result.success, "restored_counts": result.restored_counts},
    )
    return result


def last_backup(db: Session) -> BackupRecord | None:
    return db.scalar(select(BackupRecord).order_by(BackupRecord.id.desc()))
