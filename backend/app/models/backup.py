from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.models.enums import BackupKind


class BackupRecord(Base):
    """
    Audit record for every produced backup archive (manual or scheduled).
    The ZIP itself is returned to the client and/or stored in SharePoint, never on this server.
    Not part of the snapshot: a restore leaves this table untouched.
    """

    __tablename__ = "backup_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # SET NULL: restoring wipes users, backup history must survive that.
    created_by_user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by = relationship("User")

    kind: Mapped[str] = mapped_column(String(16), default=BackupKind.MANUAL.value)
    file_name: Mapped[str] = mapped_column(String(255))
    sha256: Mapped[str] = mapped_column(String(64))
    size_bytes: Mapped[int] = mapped_column(Integer)
    rows_total: Mapped[int] = mapped_column(Integer, default=0)

    sharepoint_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sharepoint_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class BackupSchedule(Base):
    """
    Single persisted backup schedule. An external cron calls /tasks/scheduled-backup;
    the endpoint runs a backup only when next_run has passed.
    """

    __tablename__ = "backup_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    frequency: Mapped[str] = mapped_column(String(16))  # see BackupFrequency
    start_time: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_run: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_run: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    creator = relationship("User")

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
