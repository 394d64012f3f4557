"""
Typed records for the backup document (backup-data.json).

One model per domain table. Field names match the ORM attribute names so a validated
record can be handed to a bulk insert as-is; the JSON side uses camelCase keys, which
keeps archives produced by the original Prisma-based portal restorable.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SnapshotRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )

    id: str

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(by_alias=False)


class UserRecord(SnapshotRecord):
    email: str
    password_hash: str | None = Field(default=None, alias="password")
    name: str | None = None
    role: str = "user"
    provider: str | None = None
    microsoft_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, v):  # noqa: ANN001
        return v or "user"


class ProjectTemplateRecord(SnapshotRecord):
    name: str
    description: str | None = None
    is_default: bool = False
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class TemplateMilestoneRecord(SnapshotRecord):
    name: str
    description: str | None = None
    order: int = 0
    template_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class ProjectRecord(SnapshotRecord):
    name: str
    location: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    description: str | None = None
    status: str = "active"
    template_id: str | None = None
    user_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class MilestoneRecord(SnapshotRecord):
    name: str
    description: str | None = None
    status: str = "pending"
    due_date: dt.datetime | None = None
    completed_date: dt.datetime | None = None
    project_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class ProjectFileRecord(SnapshotRecord):
    name: str
    file_name: str | None = None
    file_url: str
    file_type: str | None = None
    file_size: int | None = None
    thumbnail_url: str | None = None
    project_id: str
    milestone_id: str | None = None
    sharepoint_id: str | None = None
    sharepoint_url: str | None = None
    uploaded_at: dt.datetime = Field(default_factory=_utcnow)


class CommunicationRecord(SnapshotRecord):
    type: str
    subject: str | None = None
    content: str
    direction: str | None = None
    project_id: str
    milestone_id: str | None = None
    user_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class MilestoneCommentRecord(SnapshotRecord):
    content: str
    milestone_id: str
    user_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class StatusChangeRecord(SnapshotRecord):
    entity_type: str
    entity_id: str
    old_status: str | None = None
    new_status: str
    project_id: str | None = None
    milestone_id: str | None = None
    user_id: str
    created_at: dt.datetime = Field(default_factory=_utcnow)


class CalendarEventRecord(SnapshotRecord):
    title: str
    description: str | None = None
    start_date: dt.datetime
    end_date: dt.datetime | None = None
    all_day: bool = False
    location: str | None = None
    user_id: str
    project_id: str | None = None
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class BackupData(BaseModel):
    """
    Absent or null entity keys mean "zero rows of that type".
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    users: list[UserRecord] = Field(default_factory=list)
    templates: list[ProjectTemplateRecord] = Field(default_factory=list)
    template_milestones: list[TemplateMilestoneRecord] = Field(default_factory=list)
    projects: list[ProjectRecord] = Field(default_factory=list)
    milestones: list[MilestoneRecord] = Field(default_factory=list)
    files: list[ProjectFileRecord] = Field(default_factory=list)
    communications: list[CommunicationRecord] = Field(default_factory=list)
    comments: list[MilestoneCommentRecord] = Field(default_factory=list)
    status_changes: list[StatusChangeRecord] = Field(default_factory=list)
    calendar_events: list[CalendarEventRecord] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_empty(cls, v):  # noqa: ANN001
        return [] if v is None else v


class BackupMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    counts: dict[str, int] = Field(default_factory=dict)
    created_at: dt.datetime | None = None
    kind: str | None = None
    project_names: list[str] = Field(default_factory=list)
    project_ids: list[str] = Field(default_factory=list)


class BackupDocument(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    version: str = "2.0"
    format: str = "vex-export"
    timestamp: dt.datetime | None = None
    metadata: BackupMetadata = Field(default_factory=BackupMetadata)
    data: BackupData

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, v):  # noqa: ANN001
        return {} if v is None else v

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
