from __future__ import annotations

import logging
import re
from typing import Optional

import requests

from config.settings import Settings, get_settings
from services.errors import SourceUnavailable


logger = logging.getLogger(__name__)

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"
_SHEET_URL_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_GID_RE = re.compile(r"[#&?]gid=(\d+)")


def parse_sheet_locator(locator: str) -> tuple[str, str]:
    """Return (sheet_id, gid) from a bare sheet id or a full sheet URL."""
    text = (locator or "").strip()
    if not text:
        raise SourceUnavailable("No Google Sheet ID configured")
    m = _SHEET_URL_RE.search(text)
    if not m:
        return text, "0"
    gid = _GID_RE.search(text)
    return m.group(1), gid.group(1) if gid else "0"


class GoogleSheetSource:
    """Fetches the CSV export of a sheet shared as 'Anyone with the link'."""

    source_name = "google_sheet"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or get_settings()
        self.http = session or requests.Session()

    def export_url(self, locator: str) -> str:
        sheet_id, gid = parse_sheet_locator(locator)
        return EXPORT_URL.format(sheet_id=sheet_id, gid=gid)

    def fetch(self, locator: str) -> str:
        url = self.export_url(locator)
        try:
            resp = self.http.get(url, timeout=self.settings.http_timeout_seconds)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error fetching sheet: {e}", extra={"step": "fetch", "error": "network"})
            raise SourceUnavailable(f"Failed to fetch sheet: {e}") from e

        if resp.status_code != 200:
            raise SourceUnavailable(
                f"Failed to fetch sheet. Status: {resp.status_code}. "
                "Ensure the sheet's sharing is set to 'Anyone with the link'."
            )
        text = resp.text
        if not text or not text.strip():
            raise SourceUnavailable("Received empty data from the sheet. The sheet might be empty or inaccessible.")
        return text
