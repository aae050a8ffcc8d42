from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from repo_archiver.config import DriveSettings
from repo_archiver.errors import LocalToolError, RemoteApiError

from .oauth import DRIVE_FILE_SCOPE, load_drive_credentials

LOG = logging.getLogger(__name__)

ARCHIVE_MIME_TYPE = "application/octet-stream"
UPLOAD_CHUNK_SIZE = 16 * 1024 * 1024

CredentialsLoader = Callable[[], Credentials]
ServiceFactory = Callable[[Credentials], Any]


def build_drive_service(credentials: Credentials) -> Any:
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


class DriveUploader:
    """Uploads archives to Google Drive, authorizing on first use."""

    def __init__(
        self,
        settings: DriveSettings,
        credentials_loader: Optional[CredentialsLoader] = None,
        service_factory: ServiceFactory = build_drive_service,
    ) -> None:
        self._settings = settings
        self._credentials_loader = credentials_loader or self._load_credentials
        self._service_factory = service_factory
        self._service: Optional[Any] = None

    def upload(self, archive_path: Path) -> str:
        """Create a Drive file holding ``archive_path``; return its file id."""
        service = self._drive()
        body = self._file_metadata(archive_path.name)
        LOG.info(
            "Uploading to Google Drive (drive: %s, folder: %s)",
            self._settings.drive_id or "My Drive",
            self._settings.folder_id or "root",
        )

        try:
            fh = archive_path.open("rb")
        except OSError as exc:
            raise LocalToolError(f"Unable to open archive {archive_path}: {exc}") from exc

        with fh:
            media = MediaIoBaseUpload(fh, mimetype=ARCHIVE_MIME_TYPE, chunksize=UPLOAD_CHUNK_SIZE, resumable=True)
            request = service.files().create(
                body=body,
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            )
            try:
                response = request.execute()
            except HttpError as exc:
                status = int(exc.resp.status)
                content = exc.content.decode("utf-8", "replace") if exc.content else ""
                raise RemoteApiError(
                    f"error while uploading {archive_path.name} to Google Drive: "
                    f"Google responded {status}: {content}",
                    status=status,
                    payload=content,
                ) from exc
            except RefreshError as exc:
                raise RemoteApiError(
                    f"Google rejected the cached authorization while uploading {archive_path.name}: {exc}. "
                    f"Delete {self._settings.token_file} and run again to re-authorize.",
                    payload=str(exc),
                ) from exc

        file_id = (response or {}).get("id")
        if not file_id:
            raise RemoteApiError(
                f"Google Drive did not return a file id for {archive_path.name}",
                payload=response,
            )
        LOG.info("Uploaded %s as Drive file %s", archive_path.name, file_id)
        return file_id

    def _drive(self) -> Any:
        if self._service is None:
            self._service = self._service_factory(self._credentials_loader())
        return self._service

    def _file_metadata(self, name: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name}
        # driveId is read-only on files; a shared drive's root folder id is the drive id.
        if self._settings.folder_id:
            body["parents"] = [self._settings.folder_id]
        elif self._settings.drive_id:
            body["parents"] = [self._settings.drive_id]
        return body

    def _load_credentials(self) -> Credentials:
        return load_drive_credentials(
            {DRIVE_FILE_SCOPE},
            self._settings.credentials_file,
            self._settings.token_file,
        )
