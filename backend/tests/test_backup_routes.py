import io
import json
import zipfile

import httpx
import pytest

from app.core.config import settings
from app.models.project import Project
from app.services.sharepoint import DOWNLOAD_URL_KEY
from app.services.snapshot import BACKUP_ENTRY_NAME, ERR_ENTRY_NOT_FOUND, build_snapshot, count_rows, write_archive
from conftest import add_user, login_as


@pytest.fixture()
def ms_admin(db):
    return add_user(db, "ms-admin@vex.test", role="admin", provider="microsoft", access_token="graph-token")


def _graph_upload_ok(request):
    path = request.url.path
    if request.method == "GET" and path.endswith("/root/children"):
        return httpx.Response(200, json={"value": [{"id": "f-1", "name": "Backups", "folder": {}}]})
    if request.method == "PUT":
        return httpx.Response(201, json={"id": "item-1"})
    return httpx.Response(200, json={"id": "item-1", "webUrl": "https://sp.test/item-1", DOWNLOAD_URL_KEY: "https://dl.test/1"})


def test_requires_session(client):
    r = client.post("/admin/backup")
    assert r.status_code == 401
    assert r.json() == {"error": "Not authenticated"}


def test_requires_admin(client, db):
    login_as(client, add_user(db, "user@vex.test"))
    r = client.post("/admin/backup")
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden - Admin access required"


def test_backup_download(client, admin_user, sample_data):
    login_as(client, admin_user)
    r = client.post("/admin/backup")

    assert r.status_code == 200
    assert r.headers["content-type"] == "application/zip"
    name = r.headers["x-backup-filename"]
    assert name.startswith("vex-backup-") and name.endswith(".zip")
    assert f'filename="{name}"' in r.headers["content-disposition"]
    assert "x-sharepoint-url" not in r.headers
    with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
        assert zf.namelist() == [BACKUP_ENTRY_NAME]


def test_backup_upload_failure_still_returns_archive(client, graph_handler, ms_admin, sample_data):
    login_as(client, ms_admin)
    r = client.post("/admin/backup", json={"uploadToSharePoint": True})

    assert r.status_code == 200
    assert r.content[:2] == b"PK"
    assert "x-sharepoint-url" not in r.headers
    assert "x-sharepoint-id" not in r.headers
    assert graph_handler.requests, "upload was attempted"


def test_backup_upload_success_sets_sharepoint_headers(client, graph_handler, ms_admin, sample_data):
    graph_handler.handler = _graph_upload_ok
    login_as(client, ms_admin)
    r = client.post("/admin/backup", json={"uploadToSharePoint": True})

    assert r.status_code == 200
    assert r.headers["x-sharepoint-id"] == "item-1"
    assert r.headers["x-sharepoint-url"] == "https://sp.test/item-1"

    last = client.get("/admin/backup/last").json()
    assert last["sharepointUrl"] == "https://sp.test/item-1"
    assert last["createdByEmail"] == "ms-admin@vex.test"


def test_upload_skipped_without_microsoft_token(client, graph_handler, admin_user):
    login_as(client, admin_user)
    r = client.post("/admin/backup", json={"uploadToSharePoint": True})

    assert r.status_code == 200
    assert graph_handler.requests == []


def test_last_backup_404_when_none(client, admin_user):
    login_as(client, admin_user)
    r = client.get("/admin/backup/last")
    assert r.status_code == 404
    assert r.json() == {"error": "No backups yet"}


def test_restore_upload_round_trip(client, db, admin_user, sample_data):
    content = write_archive(build_snapshot(db))
    db.add(Project(name="Scratch", user_id=admin_user.id))
    db.commit()

    login_as(client, admin_user)
    r = client.post("/admin/restore", files={"file": ("backup.zip", content, "application/zip")})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["restoredProjects"] == ["Harbor Tower"]
    assert body["restoredCounts"]["projects"] == 1
    db.expire_all()
    assert count_rows(db)["projects"] == 1


def test_restore_without_file(client, admin_user):
    login_as(client, admin_user)
    r = client.post("/admin/restore")
    assert r.status_code == 400
    assert r.json() == {"error": "No backup file provided"}


def test_restore_invalid_archive_is_400_and_keeps_data(client, db, admin_user, sample_data):
    before = count_rows(db)
    login_as(client, admin_user)
    r = client.post("/admin/restore", files={"file": ("backup.zip", b"not a zip", "application/zip")})

    assert r.status_code == 400
    assert r.json() == {"error": ERR_ENTRY_NOT_FOUND}
    db.expire_all()
    assert count_rows(db) == before


def _payload_archive(payload):
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w") as zf:
        zf.writestr(BACKUP_ENTRY_NAME, json.dumps(payload))
    return out.getvalue()


def test_restore_load_failure_is_500(client, db, admin_user, sample_data):
    payload = build_snapshot(db).to_json_dict()
    payload["data"]["milestones"][0]["projectId"] = "missing"

    login_as(client, admin_user)
    r = client.post("/admin/restore", files={"file": ("backup.zip", _payload_archive(payload), "application/zip")})

    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "Failed to restore data"
    assert body["details"]


def test_restore_count_mismatch_is_500(client, db, admin_user, sample_data):
    payload = build_snapshot(db).to_json_dict()
    payload["metadata"]["counts"]["projects"] = 5

    login_as(client, admin_user)
    r = client.post("/admin/restore", files={"file": ("backup.zip", _payload_archive(payload), "application/zip")})

    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Data mismatch: Backup had 5 projects, but restore shows 1"
    assert body["backupCounts"]["projects"] == 5
    assert body["restoredCounts"]["projects"] == 1


def test_sharepoint_backups_need_microsoft_sign_in(client, admin_user):
    login_as(client, admin_user)
    r = client.get("/admin/sharepoint-backups")
    assert r.status_code == 400
    assert r.json() == {"error": "Microsoft SSO required to access SharePoint backups"}


def test_list_sharepoint_backups(client, graph_handler, ms_admin):
    def handler(request):
        path = request.url.path
        if path.endswith("/root/children"):
            return httpx.Response(200, json={"value": [{"id": "f-1", "name": "Backups", "folder": {}}]})
        return httpx.Response(
            200,
            json={
                "value": [
                    {
                        "id": "item-1",
                        "name": "vex-backup-2026-01-01T00-00-00-000Z.zip",
                        "size": 42,
                        "createdDateTime": "2026-01-01T00:00:00Z",
                        "webUrl": "https://sp.test/item-1",
                    }
                ]
            },
        )

    graph_handler.handler = handler
    login_as(client, ms_admin)
    r = client.get("/admin/sharepoint-backups")

    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    assert body["backups"][0]["id"] == "item-1"
    assert body["backups"][0]["webUrl"] == "https://sp.test/item-1"


def test_list_sharepoint_backups_graph_failure(client, ms_admin):
    login_as(client, ms_admin)
    r = client.get("/admin/sharepoint-backups")
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to list backups from SharePoint"


def test_restore_from_sharepoint(client, db, graph_handler, ms_admin, sample_data):
    content = write_archive(build_snapshot(db))

    def handler(request):
        if request.url.host == "dl.test":
            return httpx.Response(200, content=content)
        return httpx.Response(200, json={"id": "item-1", DOWNLOAD_URL_KEY: "https://dl.test/item-1"})

    graph_handler.handler = handler
    login_as(client, ms_admin)
    r = client.post("/admin/sharepoint-backups/item-1/restore")

    assert r.status_code == 200
    assert r.json()["success"] is True


def test_restore_from_sharepoint_download_failure(client, db, ms_admin, sample_data):
    before = count_rows(db)
    login_as(client, ms_admin)
    r = client.post("/admin/sharepoint-backups/item-1/restore")

    assert r.status_code == 502
    assert r.json()["error"] == "Failed to restore from SharePoint backup"
    db.expire_all()
    assert count_rows(db) == before


def test_scheduled_backup_rejects_bad_token(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_backup_secret", "s3cret")
    assert client.post("/tasks/scheduled-backup").status_code == 401
    assert client.post("/tasks/scheduled-backup", headers={"X-Tasks-Token": "wrong"}).status_code == 401


def test_scheduled_backup_closed_without_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_backup_secret", None)
    assert client.post("/tasks/scheduled-backup", headers={"X-Tasks-Token": ""}).status_code == 401


def test_scheduled_backup_not_due(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_backup_secret", "s3cret")
    r = client.post("/tasks/scheduled-backup", headers={"X-Tasks-Token": "s3cret"})
    assert r.status_code == 200
    assert r.json()["message"] == "Scheduled backup not due"


def test_schedule_endpoints(client, admin_user):
    login_as(client, admin_user)
    assert client.get("/admin/backup-schedule").json() == {"schedule": None}

    r = client.post("/admin/backup-schedule", json={"enabled": True, "frequency": "daily"})
    assert r.status_code == 200
    schedule = r.json()["schedule"]
    assert schedule["frequency"] == "daily"
    assert schedule["nextRun"] is not None
    assert schedule["creator"]["email"] == "admin@vex.test"

    assert client.post("/admin/backup-schedule", json={"frequency": "yearly"}).status_code == 422

    r = client.delete("/admin/backup-schedule")
    assert r.json() == {"success": True, "deleted": 1}
    assert client.get("/admin/backup-schedule").json() == {"schedule": None}


def test_activity_feed_lists_backups(client, admin_user):
    login_as(client, admin_user)
    client.post("/admin/backup")

    items = client.get("/admin/activity").json()
    assert items[0]["action"] == "backup_export"
    assert items[0]["actorEmail"] == "admin@vex.test"
    assert items[0]["actionLabel"] == "Backup created"
