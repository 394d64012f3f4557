import datetime as dt
import io
import json
import zipfile

import pytest
from sqlalchemy.orm import sessionmaker

from app.models.enums import BackupKind
from app.models.project import Milestone, Project
from app.models.user import User
from app.services.backup_schedule import as_utc
from app.services.snapshot import (
    BACKUP_ENTRY_NAME,
    ERR_BAD_JSON,
    ERR_ENTRY_NOT_FOUND,
    ERR_MISSING_DATA,
    BackupFormatError,
    backup_file_name,
    build_snapshot,
    count_rows,
    load_snapshot,
    read_archive,
    write_archive,
)
from conftest import memory_engine


def _zip(entries: dict[str, bytes]) -> bytes:
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w") as zf:
        for name, payload in entries.items():
            zf.writestr(name, payload)
    return out.getvalue()


def test_snapshot_counts_match_rows(db, sample_data):
    doc = build_snapshot(db, now=dt.datetime(2026, 1, 13, 9, 30, tzinfo=dt.timezone.utc))
    assert doc.metadata.counts == {
        "users": 1,
        "templates": 1,
        "templateMilestones": 1,
        "projects": 1,
        "milestones": 1,
        "files": 1,
        "communications": 1,
        "comments": 1,
        "statusChanges": 1,
        "calendarEvents": 1,
    }
    assert doc.metadata.project_names == ["Harbor Tower"]
    assert doc.metadata.project_ids == [sample_data["project"].id]
    assert doc.version == "2.0"


def test_archive_holds_single_json_entry_with_camel_case_keys(db, sample_data):
    content = write_archive(build_snapshot(db))
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        assert zf.namelist() == [BACKUP_ENTRY_NAME]
        parsed = json.loads(zf.read(BACKUP_ENTRY_NAME))

    assert set(parsed) >= {"version", "timestamp", "metadata", "data"}
    assert "templateMilestones" in parsed["data"]
    assert parsed["metadata"]["projectNames"] == ["Harbor Tower"]
    project = parsed["data"]["projects"][0]
    assert project["userId"] == sample_data["user"].id
    assert "zipCode" in project
    # Password hashes keep the key used by older archives.
    assert "password" in parsed["data"]["users"][0]


def test_backup_file_name_format():
    now = dt.datetime(2026, 1, 13, 9, 30, 5, 123000, tzinfo=dt.timezone.utc)
    assert backup_file_name(now) == "vex-backup-2026-01-13T09-30-05-123Z.zip"
    assert backup_file_name(now, BackupKind.SCHEDULED) == "vex-scheduled-backup-2026-01-13T09-30-05-123Z.zip"


def test_round_trip_into_empty_database(db, sample_data):
    content = write_archive(build_snapshot(db))
    before = count_rows(db)

    engine = memory_engine()
    try:
        target = sessionmaker(bind=engine)()
        load_snapshot(target, read_archive(content))
        assert count_rows(target) == before

        project = target.get(Project, sample_data["project"].id)
        assert project.name == "Harbor Tower"
        assert project.template_id == sample_data["template"].id
        target.close()
    finally:
        engine.dispose()


def test_restored_dates_are_datetimes(db, sample_data):
    load_snapshot(db, read_archive(write_archive(build_snapshot(db))))

    milestone = db.get(Milestone, sample_data["milestone"].id)
    assert isinstance(milestone.due_date, dt.datetime)
    assert as_utc(milestone.due_date) == dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.timezone.utc)


def test_read_archive_accepts_iso_strings_and_old_key_names(db):
    payload = {
        "version": "1.0",
        "metadata": {"counts": {"users": 1, "projects": 0}},
        "data": {
            "users": [
                {
                    "id": "u1",
                    "email": "old@vex.test",
                    "password": "$2b$12$abcdefghijklmnopqrstuv",
                    "role": None,
                    "createdAt": "2024-03-01T12:00:00.000Z",
                    "updatedAt": "2024-03-01T12:00:00.000Z",
                    "someRemovedColumn": 1,
                }
            ],
            "projects": None,
        },
    }
    doc = read_archive(_zip({BACKUP_ENTRY_NAME: json.dumps(payload).encode()}))
    user = doc.data.users[0]
    assert user.password_hash.startswith("$2b$")
    assert user.role == "user"
    assert user.created_at == dt.datetime(2024, 3, 1, 12, 0, tzinfo=dt.timezone.utc)
    assert doc.data.projects == []

    load_snapshot(db, doc)
    assert db.get(User, "u1").email == "old@vex.test"


@pytest.mark.parametrize(
    "content,message",
    [
        (b"not a zip at all", ERR_ENTRY_NOT_FOUND),
        (_zip({"readme.txt": b"hello"}), ERR_ENTRY_NOT_FOUND),
        (_zip({BACKUP_ENTRY_NAME: b"{not json"}), ERR_BAD_JSON),
        (_zip({BACKUP_ENTRY_NAME: b'{"version": "2.0"}'}), ERR_MISSING_DATA),
        (_zip({BACKUP_ENTRY_NAME: b'{"data": []}'}), ERR_MISSING_DATA),
    ],
)
def test_read_archive_rejects_malformed_input(content, message):
    with pytest.raises(BackupFormatError) as exc:
        read_archive(content)
    assert str(exc.value) == message


def test_read_archive_rejects_records_missing_required_fields():
    payload = {"data": {"projects": [{"id": "p1"}]}}
    with pytest.raises(BackupFormatError) as exc:
        read_archive(_zip({BACKUP_ENTRY_NAME: json.dumps(payload).encode()}))
    assert str(exc.value).startswith("Invalid backup file - invalid records:")


def test_read_archive_falls_back_to_any_json_entry():
    doc = read_archive(_zip({"export.json": b'{"data": {}}'}))
    assert doc.data.users == []
