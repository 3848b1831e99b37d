from __future__ import annotations

from typing import Dict, Protocol, Sequence

from models import ContactRecord, Outcome


# Sentinel a provider returns when a person's city cannot be established.
# Compared case-insensitively; part of the gateway contract, not free text.
NOT_FOUND_TOKEN = "Not Found"


def is_not_found_token(value: str | None) -> bool:
    return (value or "").strip().lower() == NOT_FOUND_TOKEN.lower()


class LookupGatewayPort(Protocol):
    """Batch city/job-title lookup.

    Every input record id must be present in the returned mapping. Malformed
    upstream responses are downgraded to Classified(SERVICE_ERROR), never
    raised. A provider without a usable credential raises MissingCredential
    before any network activity. No internal retries.
    """

    name: str

    def lookup(self, batch: Sequence[ContactRecord]) -> Dict[int, Outcome]:
        ...
