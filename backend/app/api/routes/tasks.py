from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_graph_client_factory
from app.core.config import settings
from app.core.security import tokens_match
from app.db.session import get_db
from app.schemas.backup import ScheduledBackupOut
from app.services.backup_schedule import run_scheduled_backup
from app.services.sharepoint import GraphDriveClient

router = APIRouter()


@router.post("/scheduled-backup", response_model=ScheduledBackupOut)
def scheduled_backup(
    force: bool = Query(default=False),
    db: Session = Depends(get_db),
    x_tasks_token: str | None = Header(default=None),
    graph_client_factory: Callable[[str], GraphDriveClient] = Depends(get_graph_client_factory),
):
    # No secret configured means the endpoint stays closed.
    if not tokens_match(settings.admin_backup_secret, x_tasks_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid tasks token")
    return run_scheduled_backup(db, graph_client_factory=graph_client_factory, force=force)
