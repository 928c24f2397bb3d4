import logging
import os
from dataclasses import dataclass

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import settings

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class StorageProvisioningError(RuntimeError):
    pass


@dataclass(frozen=True)
class ProvisionedFolder:
    folder_id: str
    folder_url: str


def folder_url(folder_id: str) -> str:
    return f"https://drive.google.com/drive/folders/{folder_id}"


class StorageProvisioner:
    def ensure_root_folder(self, client_folder_id: str) -> str:
        raise NotImplementedError

    def create_subfolder(self, raw_folder_id: str, creator_name: str, casting_title: str) -> ProvisionedFolder:
        raise NotImplementedError


class GoogleDriveProvisioner(StorageProvisioner):
    def __init__(self) -> None:
        self._service = None

    def _drive(self):
        if self._service is not None:
            return self._service
        path = settings.google_service_account_json_path
        if not path or not os.path.isfile(path):
            raise StorageProvisioningError("GOOGLE_SERVICE_ACCOUNT_JSON_PATH is missing or does not exist")
        creds = service_account.Credentials.from_service_account_file(path, scopes=settings.google_drive_scope_list)
        self._service = build("drive", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _find_folder(self, parent_id: str, name: str) -> str | None:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        query = (
            f"'{parent_id}' in parents and name = '{escaped}' "
            f"and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        results = (
            self._drive()
            .files()
            .list(q=query, pageSize=1, fields="files(id, name)", supportsAllDrives=True, includeItemsFromAllDrives=True)
            .execute()
        )
        files = results.get("files", [])
        return files[0]["id"] if files else None

    def _find_or_create_folder(self, parent_id: str, name: str) -> str:
        try:
            existing = self._find_folder(parent_id, name)
            if existing:
                return existing
            created = (
                self._drive()
                .files()
                .create(
                    body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
                    fields="id",
                    supportsAllDrives=True,
                )
                .execute()
            )
        except HttpError as exc:
            raise StorageProvisioningError(f"Drive request failed for folder '{name}': {exc}") from exc
        logger.info("storage_folder_created parent_id=%s name=%s folder_id=%s", parent_id, name, created["id"])
        return created["id"]

    def ensure_root_folder(self, client_folder_id: str) -> str:
        return self._find_or_create_folder(client_folder_id, settings.storage_root_folder_name)

    def create_subfolder(self, raw_folder_id: str, creator_name: str, casting_title: str) -> ProvisionedFolder:
        folder_id = self._find_or_create_folder(raw_folder_id, f"{creator_name} - {casting_title}")
        return ProvisionedFolder(folder_id=folder_id, folder_url=folder_url(folder_id))


def get_storage_provisioner() -> StorageProvisioner:
    return GoogleDriveProvisioner()
