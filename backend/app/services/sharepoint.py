"""
SharePoint / OneDrive storage for backup archives, through Microsoft Graph.

Archives live in a "Backups" folder at the drive root. The drive is chosen by
SHAREPOINT_DRIVE_ID, else the default drive of SHAREPOINT_SITE_ID, else the caller's
own OneDrive (/me/drive).
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

BACKUPS_FOLDER = "Backups"
BACKUP_NAME_PREFIXES = ("vex-backup", "vex-scheduled-backup")
DOWNLOAD_URL_KEY = "@microsoft.graph.downloadUrl"


class GraphError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.code == "itemNotFound"

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409 or self.code == "nameAlreadyExists"


@dataclass(frozen=True)
class CloudItem:
    id: str
    web_url: str | None
    download_url: str | None


@dataclass(frozen=True)
class UploadOk:
    item: CloudItem


@dataclass(frozen=True)
class UploadFailed:
    error: str


UploadResult = UploadOk | UploadFailed


def _parse_graph_datetime(v: str | None) -> dt.datetime | None:
    if not v:
        return None
    return dt.datetime.fromisoformat(v.replace("Z", "+00:00"))


class GraphDriveClient:
    def __init__(
        self,
        access_token: str,
        *,
        site_id: str | None = None,
        drive_id: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise ValueError("access_token is required")
        self.site_id = site_id
        self.drive_id = drive_id
        self._api = httpx.Client(
            base_url=base_url or settings.graph_base_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        # Pre-authenticated download URLs must be fetched without the bearer token.
        self._downloads = httpx.Client(timeout=timeout, transport=transport, follow_redirects=True)

    @property
    def drive_path(self) -> str:
        if self.drive_id:
            return f"/drives/{self.drive_id}"
        if self.site_id:
            return f"/sites/{self.site_id}/drive"
        return "/me/drive"

    def close(self) -> None:
        self._api.close()
        self._downloads.close()

    def __enter__(self) -> GraphDriveClient:
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:  # noqa: ANN003
        r = self._api.request(method, path, **kwargs)
        if r.status_code >= 400:
            raise self._error_from_response(r)
        if not r.content:
            return {}
        return r.json()

    @staticmethod
    def _error_from_response(r: httpx.Response) -> GraphError:
        code = None
        message = r.text[:200]
        try:
            body = r.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            code = body["error"].get("code")
            message = body["error"].get("message") or message
        return GraphError(f"Graph request failed: {r.status_code} {message}", status_code=r.status_code, code=code)

    def _find_backups_folder(self) -> dict[str, Any] | None:
        # Conflict renames can produce "Backups 1" etc.; any folder starting with the name counts.
        data = self._request("GET", f"{self.drive_path}/root/children", params={"$filter": "folder ne null"})
        for item in data.get("value") or []:
            if item.get("name", "").startswith(BACKUPS_FOLDER) and "folder" in item:
                return item
        return None

    def get_or_create_backups_folder(self) -> str:
        found = self._find_backups_folder()
        if found:
            logger.info("Backups folder found: %r (id=%s)", found["name"], found["id"])
            return found["id"]

        try:
            item = self._request("GET", f"{self.drive_path}/root:/{BACKUPS_FOLDER}")
            return item["id"]
        except GraphError as e:
            if not e.is_not_found:
                raise

        logger.info("Creating Backups folder in %s", self.drive_path)
        try:
            created = self._request(
                "POST",
                f"{self.drive_path}/root/children",
                json={"name": BACKUPS_FOLDER, "folder": {}, "@microsoft.graph.conflictBehavior": "fail"},
            )
            return created["id"]
        except GraphError as e:
            if not e.is_conflict:
                raise
            # Another request created it between our lookup and the create.
            logger.info("Backups folder already exists, resolving it again")
            found = self._find_backups_folder()
            if found:
                return found["id"]
            raise

    def get_item(self, item_id: str) -> dict[str, Any]:
        return self._request("GET", f"{self.drive_path}/items/{item_id}")

    def upload_backup(self, content: bytes, file_name: str) -> CloudItem:
        folder_id = self.get_or_create_backups_folder()
        uploaded = self._request(
            "PUT",
            f"{self.drive_path}/items/{folder_id}:/{quote(file_name)}:/content",
            content=content,
            headers={"Content-Type": "application/zip"},
        )
        details = self.get_item(uploaded["id"])
        web_url = details.get("webUrl")
        logger.info("Backup %s uploaded (id=%s)", file_name, uploaded["id"])
        return CloudItem(id=uploaded["id"], web_url=web_url, download_url=details.get(DOWNLOAD_URL_KEY) or web_url)

    def list_backups(self) -> list[dict[str, Any]]:
        """
        Backup archives in the Backups folder, newest first.
        """
        folder_id = self.get_or_create_backups_folder()
        data = self._request("GET", f"{self.drive_path}/items/{folder_id}/children")
        backups = []
        for item in data.get("value") or []:
            name = item.get("name", "")
            if "folder" in item or not name.endswith(".zip") or not name.startswith(BACKUP_NAME_PREFIXES):
                continue
            backups.append(
                {
                    "id": item["id"],
                    "name": name,
                    "size": item.get("size"),
                    "created_date_time": _parse_graph_datetime(item.get("createdDateTime")),
                    "last_modified_date_time": _parse_graph_datetime(item.get("lastModifiedDateTime")),
                    "web_url": item.get("webUrl"),
                    "download_url": item.get(DOWNLOAD_URL_KEY) or item.get("webUrl"),
                }
            )
        epoch = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
        backups.sort(key=lambda b: b["created_date_time"] or b["last_modified_date_time"] or epoch, reverse=True)
        return backups

    def get_download_url(self, item_id: str) -> str | None:
        return self.get_item(item_id).get(DOWNLOAD_URL_KEY)

    def download_backup(self, item_id: str) -> bytes:
        download_url = self.get_download_url(item_id)
        if download_url:
            r = self._downloads.get(download_url)
        else:
            r = self._api.get(f"{self.drive_path}/items/{item_id}/content", follow_redirects=True)
        if r.status_code != 200:
            raise GraphError(f"Failed to download backup file: {r.status_code} {r.reason_phrase}", status_code=r.status_code)
        logger.info("Downloaded backup %s (%d bytes)", item_id, len(r.content))
        return r.content


def create_graph_client(access_token: str) -> GraphDriveClient:
    return GraphDriveClient(
        access_token,
        site_id=settings.sharepoint_site_id,
        drive_id=settings.sharepoint_drive_id,
        timeout=settings.graph_timeout_seconds,
    )


def upload_backup_result(client: GraphDriveClient, content: bytes, file_name: str) -> UploadResult:
    try:
        item = client.upload_backup(content, file_name)
    except (GraphError, httpx.HTTPError) as e:
        logger.warning("SharePoint upload of %s failed: %s", file_name, e)
        return UploadFailed(error=str(e))
    return UploadOk(item=item)
