from __future__ import annotations

import datetime as dt

from pydantic import Field

from app.models.enums import BackupFrequency
from app.schemas.common import CamelModel


class BackupRequest(CamelModel):
    upload_to_sharepoint: bool = Field(default=False, alias="uploadToSharePoint")


class BackupLastOut(CamelModel):
    id: int
    created_at: dt.datetime
    created_by_email: str
    kind: str
    file_name: str
    size_bytes: int
    sharepoint_url: str | None = None


class RestoreResult(CamelModel):
    success: bool
    message: str
    restored_counts: dict[str, int] = Field(default_factory=dict)
    restored_projects: list[str] = Field(default_factory=list)
    backup_counts: dict[str, int] | None = None


class CloudBackupOut(CamelModel):
    id: str
    name: str
    size: int | None = None
    created_date_time: dt.datetime | None = None
    last_modified_date_time: dt.datetime | None = None
    web_url: str | None = None
    download_url: str | None = None


class CloudBackupListOut(CamelModel):
    backups: list[CloudBackupOut]
    count: int


class BackupScheduleIn(CamelModel):
    enabled: bool = True
    frequency: BackupFrequency
    start_time: dt.datetime | None = None


class ScheduleCreatorOut(CamelModel):
    id: str
    name: str | None
    email: str


class BackupScheduleOut(CamelModel):
    id: int
    enabled: bool
    frequency: str
    start_time: dt.datetime | None
    last_run: dt.datetime | None
    next_run: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime
    creator: ScheduleCreatorOut | None = None


class BackupScheduleEnvelope(CamelModel):
    schedule: BackupScheduleOut | None


class ScheduledBackupOut(CamelModel):
    success: bool
    message: str
    file_name: str | None = None
    sharepoint_url: str | None = None
    size: int | None = None
    next_run: dt.datetime | None = None
