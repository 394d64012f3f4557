from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class AuthProvider(str, enum.Enum):
    CREDENTIALS = "credentials"
    MICROSOFT = "microsoft"


class BackupKind(str, enum.Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class BackupFrequency(str, enum.Enum):
    EVERY_10_MIN = "10min"
    EVERY_30_MIN = "30min"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class AuditAction(str, enum.Enum):
    LOGIN = "login"
    BACKUP_EXPORT = "backup_export"
    BACKUP_RESTORE = "backup_restore"
    SCHEDULE_UPDATE = "backup_schedule_update"
    SCHEDULE_DELETE = "backup_schedule_delete"
