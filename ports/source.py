from __future__ import annotations

from typing import Protocol


class SourcePort(Protocol):
    """Fetches raw delimited text for a locator; raises SourceUnavailable on failure."""

    source_name: str

    def fetch(self, locator: str) -> str:
        ...
