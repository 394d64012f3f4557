from fastapi import APIRouter

from app.api.routes import activity, auth, backup_schedule, backups, cloud_backups, tasks

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(backups.router, prefix="/admin", tags=["backups"])
api_router.include_router(cloud_backups.router, prefix="/admin/sharepoint-backups", tags=["backups"])
api_router.include_router(backup_schedule.router, prefix="/admin/backup-schedule", tags=["backups"])
api_router.include_router(activity.router, prefix="/admin/activity", tags=["activity"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
