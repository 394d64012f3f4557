from app.models.audit import AuditEvent
from app.models.backup import BackupRecord, BackupSchedule
from app.models.calendar_event import CalendarEvent
from app.models.communication import Communication, MilestoneComment, StatusChange
from app.models.project import Milestone, Project
from app.models.project_file import ProjectFile
from app.models.template import ProjectTemplate, TemplateMilestone
from app.models.user import User

__all__ = [
    "AuditEvent",
    "BackupRecord",
    "BackupSchedule",
    "CalendarEvent",
    "Communication",
    "Milestone",
    "MilestoneComment",
    "Project",
    "ProjectFile",
    "ProjectTemplate",
    "StatusChange",
    "TemplateMilestone",
    "User",
]
