"""Google Sheets API client."""

import logging
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import settings
from .base import TabularSink

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def index_to_col_letter(index: int) -> str:
    """Convert 0-based index to column letter(s)."""
    result = ""
    index += 1
    while index > 0:
        index -= 1
        result = chr(ord("A") + (index % 26)) + result
        index //= 26
    return result


class GoogleSheetsClient(TabularSink):
    """Tabular sink backed by one tab per resource in a Google spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: Optional[str] = None,
        tab_names: Optional[dict[str, str]] = None,
    ):
        self.spreadsheet_id = spreadsheet_id or settings.spreadsheet_id
        self.tab_names = dict(tab_names or {})
        self._service = None
        self._credentials = None
        self._known_tabs: Optional[set[str]] = None

    def _get_credentials(self) -> Credentials:
        """Get or refresh OAuth2 credentials."""
        creds = None

        if settings.google_token_path.exists():
            creds = Credentials.from_authorized_user_file(str(settings.google_token_path), SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                if not settings.google_credentials_path.exists():
                    raise FileNotFoundError(
                        f"Google credentials file not found at {settings.google_credentials_path}. "
                        "Please download it from Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(settings.google_credentials_path), SCOPES
                )
                creds = flow.run_local_server(port=0)

            # Save credentials for next run
            settings.google_token_path.parent.mkdir(parents=True, exist_ok=True)
            with open(settings.google_token_path, "w") as token:
                token.write(creds.to_json())

        return creds

    @property
    def service(self):
        """Get or create the Sheets API service."""
        if self._service is None:
            if not self.spreadsheet_id:
                raise RuntimeError("No spreadsheet configured; set SPREADSHEET_ID")
            self._credentials = self._get_credentials()
            self._service = build("sheets", "v4", credentials=self._credentials)
        return self._service

    def tab_for(self, resource_id: str) -> str:
        """Tab title used for a resource."""
        return self.tab_names.get(resource_id, resource_id)

    def _list_tabs(self) -> set[str]:
        if self._known_tabs is None:
            try:
                result = (
                    self.service.spreadsheets()
                    .get(spreadsheetId=self.spreadsheet_id, fields="sheets.properties.title")
                    .execute()
                )
            except HttpError as e:
                raise RuntimeError(f"Failed to get spreadsheet info: {e}")
            self._known_tabs = {
                sheet["properties"]["title"] for sheet in result.get("sheets", [])
            }
        return self._known_tabs

    def ensure_tab(self, title: str) -> None:
        """Create the tab if the spreadsheet doesn't have it yet."""
        if title in self._list_tabs():
            return
        body = {"requests": [{"addSheet": {"properties": {"title": title}}}]}
        try:
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id, body=body
            ).execute()
        except HttpError as e:
            raise RuntimeError(f"Failed to create tab '{title}': {e}")
        self._known_tabs.add(title)
        logger.info(f"Created tab '{title}'")

    def declare_columns(self, resource_id: str, header_names: list[str]) -> None:
        """Write the header row, leaving data rows in place."""
        title = self.tab_for(resource_id)
        self.ensure_tab(title)
        try:
            values = self.service.spreadsheets().values()
            values.clear(spreadsheetId=self.spreadsheet_id, range=f"'{title}'!1:1").execute()
            if header_names:
                values.update(
                    spreadsheetId=self.spreadsheet_id,
                    range=f"'{title}'!A1",
                    valueInputOption="RAW",
                    body={"values": [list(header_names)]},
                ).execute()
        except HttpError as e:
            raise RuntimeError(f"Failed to write headers for '{title}': {e}")
        logger.info(f"Set headers for '{title}': {', '.join(header_names)}")

    def replace_rows(
        self, resource_id: str, rows: list[list[Any]], header_names: list[str]
    ) -> None:
        """Clear the tab and write header plus rows in a single update."""
        title = self.tab_for(resource_id)
        self.ensure_tab(title)
        width = max([len(header_names)] + [len(row) for row in rows]) or 1
        last_col = index_to_col_letter(width - 1)
        body = {"values": [list(header_names)] + [list(row) for row in rows]}
        try:
            values = self.service.spreadsheets().values()
            values.clear(spreadsheetId=self.spreadsheet_id, range=f"'{title}'").execute()
            values.update(
                spreadsheetId=self.spreadsheet_id,
                range=f"'{title}'!A1:{last_col}{len(rows) + 1}",
                valueInputOption="USER_ENTERED",
                body=body,
            ).execute()
        except HttpError as e:
            raise RuntimeError(f"Failed to write rows to '{title}': {e}")
        logger.info(f"Wrote {len(rows)} rows to '{title}'")

    def read_all_rows(self, resource_id: str) -> list[list[Any]]:
        """Read data rows below the header, padded to the header width."""
        title = self.tab_for(resource_id)
        if title not in self._list_tabs():
            logger.info(f"Tab '{title}' not found")
            return []
        try:
            result = (
                self.service.spreadsheets()
                .values()
                .get(spreadsheetId=self.spreadsheet_id, range=f"'{title}'")
                .execute()
            )
        except HttpError as e:
            raise RuntimeError(f"Failed to read '{title}': {e}")

        values = result.get("values", [])
        if len(values) <= 1:
            return []
        width = len(values[0])
        # The API drops trailing empty cells
        return [row + [""] * (width - len(row)) for row in values[1:]]
