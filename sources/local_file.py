from __future__ import annotations

from pathlib import Path

from services.errors import SourceUnavailable


class LocalFileSource:
    """Reads a CSV export saved to disk; the locator is a file path."""

    source_name = "file"

    def fetch(self, locator: str) -> str:
        path = Path(locator).expanduser()
        try:
            text = path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise SourceUnavailable(f"Cannot read {path}: {e}") from e
        if not text.strip():
            raise SourceUnavailable(f"{path} is empty")
        return text
