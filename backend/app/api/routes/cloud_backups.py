"""SharePoint-stored backups: list and restore."""

from __future__ import annotations

import logging
from typing import Callable

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_graph_client_factory, require_microsoft_admin
from app.api.routes.backups import restore_response
from app.db.session import get_db
from app.models.user import User
from app.schemas.backup import CloudBackupListOut, CloudBackupOut, RestoreResult
from app.services.sharepoint import GraphDriveClient, GraphError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=CloudBackupListOut)
def list_cloud_backups(
    user: User = Depends(require_microsoft_admin),
    graph_client_factory: Callable[[str], GraphDriveClient] = Depends(get_graph_client_factory),
) -> CloudBackupListOut:
    try:
        with graph_client_factory(user.access_token) as client:
            items = client.list_backups()
    except (GraphError, httpx.HTTPError) as e:
        logger.exception("Error listing SharePoint backups")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to list backups from SharePoint", "details": str(e)},
        )
    backups = [CloudBackupOut(**item) for item in items]
    return CloudBackupListOut(backups=backups, count=len(backups))


@router.post("/{item_id}/restore", response_model=RestoreResult)
def restore_cloud_backup(
    item_id: str,
    user: User = Depends(require_microsoft_admin),
    db: Session = Depends(get_db),
    graph_client_factory: Callable[[str], GraphDriveClient] = Depends(get_graph_client_factory),
) -> JSONResponse:
    # Without the archive there is nothing to fall back to: download failures are fatal here.
    try:
        with graph_client_factory(user.access_token) as client:
            content = client.download_backup(item_id)
    except (GraphError, httpx.HTTPError) as e:
        logger.exception("Error downloading SharePoint backup %s", item_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to restore from SharePoint backup", "details": str(e)},
        )
    return restore_response(db, content, user=user, source=f"sharepoint:{item_id}")
