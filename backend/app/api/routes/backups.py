from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from app.api.deps import get_graph_client_factory, require_admin
from app.db.session import get_db
from app.models.user import User
from app.schemas.backup import BackupLastOut, BackupRequest, RestoreResult
from app.services.backups import RestoreLoadError, create_backup, last_backup, restore_from_archive
from app.services.sharepoint import GraphDriveClient
from app.services.snapshot import BackupFormatError

logger = logging.getLogger(__name__)
router = APIRouter()


def restore_response(db: Session, content: bytes, *, user: User, source: str) -> JSONResponse:
    """
    Shared by the upload and SharePoint restore endpoints.
    Format errors are 400 (nothing deleted); load failures and count mismatches are 500.
    """
    try:
        result = restore_from_archive(db, content, user=user, source=source)
    except BackupFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RestoreLoadError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to restore data", "details": str(e)},
        )
    code = status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=result.model_dump(mode="json", by_alias=True))


@router.post("/backup")
def export_backup(
    payload: BackupRequest | None = Body(default=None),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    graph_client_factory: Callable[[str], GraphDriveClient] = Depends(get_graph_client_factory),
) -> Response:
    """
    Returns a ZIP holding backup-data.json. When asked, and when the admin signed in with
    Microsoft, the same ZIP is pushed to SharePoint; upload failures only drop the SharePoint headers.
    """
    upload_requested = bool(payload and payload.upload_to_sharepoint)
    if upload_requested and user.has_microsoft_token:
        with graph_client_factory(user.access_token) as client:
            outcome = create_backup(db, user=user, graph_client=client)
    else:
        if upload_requested:
            logger.info("Backup: SharePoint upload skipped, user %s has no Microsoft token", user.id)
        outcome = create_backup(db, user=user)

    headers = {
        "Content-Disposition": f'attachment; filename="{outcome.file_name}"',
        "X-Backup-Filename": outcome.file_name,
        "X-Backup-Id": str(outcome.record.id),
        "X-Backup-Sha256": outcome.sha256,
    }
    cloud = outcome.cloud_item
    if cloud is not None:
        headers["X-SharePoint-Id"] = cloud.id
        if cloud.web_url:
            headers["X-SharePoint-Url"] = cloud.web_url
    return Response(content=outcome.content, media_type="application/zip", headers=headers)


@router.get("/backup/last", response_model=BackupLastOut)
def get_last_backup(db: Session = Depends(get_db), _: User = Depends(require_admin)) -> BackupLastOut:
    rec = last_backup(db)
    if not rec:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No backups yet")
    return BackupLastOut(
        id=rec.id,
        created_at=rec.created_at,
        created_by_email=rec.created_by.email if rec.created_by else "",
        kind=rec.kind,
        file_name=rec.file_name,
        size_bytes=rec.size_bytes,
        sharepoint_url=rec.sharepoint_url,
    )


@router.post("/restore", response_model=RestoreResult)
def restore_backup(
    file: UploadFile | None = File(default=None),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JSONResponse:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No backup file provided")
    content = file.file.read()
    logger.info("Restore: received %s (%d bytes)", file.filename, len(content))
    return restore_response(db, content, user=user, source=f"upload:{file.filename}")
