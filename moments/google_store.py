"""
Google Sheets (tabular) and Google Drive (blob) backends.

Both wrap a discovery client built with googleapiclient; any HttpError is
re-raised as StoreAccessError so the handlers report it uniformly.
"""

import io
import logging
import threading
from typing import Any, Optional

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from moments.errors import StoreAccessError

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def load_credentials(credentials_file: Optional[str], scopes: list[str]):
    """Service-account credentials from a key file, else application defaults."""
    if credentials_file:
        return service_account.Credentials.from_service_account_file(
            credentials_file, scopes=scopes
        )
    creds, _ = google.auth.default(scopes=scopes)
    return creds


def a1_range(sheet_name: str, cells: str = "") -> str:
    """Quote a sheet name for A1 notation, e.g. 'my sheet'!A1."""
    quoted = "'" + sheet_name.replace("'", "''") + "'"
    return f"{quoted}!{cells}" if cells else quoted


class LazyDiscoveryClient:
    """
    Holds discovery clients, one per thread, each built on first use.

    The httplib2 transport under a discovery client must not be shared
    between threads, and sync routes run in a threadpool. Credentials are
    loaded once and shared. Pass a ready client as service to use it
    everywhere instead. Credential problems surface as StoreAccessError at
    call time.
    """

    api: tuple[str, str]
    scopes: list[str]

    def __init__(self, service=None, credentials_file: Optional[str] = None):
        self._fixed_service = service
        self.credentials_file = credentials_file
        self._credentials = None
        self._credentials_lock = threading.Lock()
        self._local = threading.local()

    def _load_credentials(self):
        with self._credentials_lock:
            if self._credentials is None:
                try:
                    self._credentials = load_credentials(self.credentials_file, self.scopes)
                except (GoogleAuthError, OSError, ValueError) as e:
                    raise StoreAccessError(f"Google credentials unavailable: {e}") from e
            return self._credentials

    @property
    def service(self):
        if self._fixed_service is not None:
            return self._fixed_service

        service = getattr(self._local, "service", None)
        if service is None:
            name, version = self.api
            creds = self._load_credentials()
            service = build(name, version, credentials=creds, cache_discovery=False)
            self._local.service = service
            logger.info(f"Built {name} {version} client for {threading.current_thread().name}")
        return service


# =============================================================================
# Google Sheets
# =============================================================================

class SheetsTable:
    """One sheet of a spreadsheet, read and appended through the values API."""

    def __init__(self, service, spreadsheet_id: str, name: str):
        self._service = service
        self.spreadsheet_id = spreadsheet_id
        self.name = name

    def append_row(self, values: list[Any]) -> None:
        body = {"values": [list(values)]}
        try:
            self._service.spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(self.name, "A1"),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body=body,
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to append row to sheet {self.name}: {e}") from e

    def get_values(self) -> list[list[Any]]:
        try:
            resp = self._service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(self.name),
                valueRenderOption="UNFORMATTED_VALUE",
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to read sheet {self.name}: {e}") from e
        return resp.get("values", [])


class SheetsSpreadsheet:
    """An opened spreadsheet and the titles of its sheets."""

    def __init__(self, service, spreadsheet_id: str, sheet_titles: set[str]):
        self._service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_titles = sheet_titles

    def get_table(self, name: str) -> Optional[SheetsTable]:
        if name not in self.sheet_titles:
            return None
        return SheetsTable(self._service, self.spreadsheet_id, name)

    def create_table(self, name: str, header: list[str]) -> SheetsTable:
        body = {"requests": [{"addSheet": {"properties": {"title": name}}}]}
        try:
            self._service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id, body=body
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to create sheet {name}: {e}") from e

        self.sheet_titles.add(name)
        table = SheetsTable(self._service, self.spreadsheet_id, name)
        table.append_row(header)
        logger.info(f"Created new sheet: {name}")
        return table


class SheetsTabularStore(LazyDiscoveryClient):
    """Tabular store over the Sheets v4 API."""

    api = ("sheets", "v4")
    scopes = SHEETS_SCOPES

    def open(self, store_id: str) -> SheetsSpreadsheet:
        service = self.service
        try:
            resp = service.spreadsheets().get(
                spreadsheetId=store_id,
                fields="properties.title,sheets.properties.title",
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to open spreadsheet {store_id}: {e}") from e

        titles = {s["properties"]["title"] for s in resp.get("sheets", [])}
        logger.debug(f"Opened spreadsheet {store_id} with sheets {sorted(titles)}")
        return SheetsSpreadsheet(service, store_id, titles)


# =============================================================================
# Google Drive
# =============================================================================

class DriveFile:
    """A file created in Drive."""

    def __init__(self, service, file_id: str, name: str):
        self._service = service
        self.id = file_id
        self.name = name

    def share_publicly(self) -> None:
        try:
            self._service.permissions().create(
                fileId=self.id,
                body={"type": "anyone", "role": "reader"},
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to share file {self.id}: {e}") from e


class DriveFolder:
    """A Drive folder that new files are created in."""

    def __init__(self, service, folder_id: str, name: str = ""):
        self._service = service
        self.id = folder_id
        self.name = name

    def create_file(self, data: bytes, mime_type: str, name: str) -> DriveFile:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
        try:
            created = self._service.files().create(
                body={"name": name, "parents": [self.id], "mimeType": mime_type},
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to create file {name}: {e}") from e
        return DriveFile(self._service, created["id"], name)


class DriveBlobStore(LazyDiscoveryClient):
    """Blob store over the Drive v3 API."""

    api = ("drive", "v3")
    scopes = DRIVE_SCOPES

    def get_folder(self, folder_id: str) -> DriveFolder:
        service = self.service
        try:
            meta = service.files().get(
                fileId=folder_id,
                fields="id,name,mimeType",
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise StoreAccessError(f"Failed to open folder {folder_id}: {e}") from e

        if meta.get("mimeType") != FOLDER_MIME_TYPE:
            raise StoreAccessError(f"{folder_id} is not a folder")
        return DriveFolder(service, folder_id, meta.get("name", ""))
