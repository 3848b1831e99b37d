from __future__ import annotations

import csv
import io
from typing import Iterable

from models import ContactRecord


# The city column header is intentionally not one of the importer's
# already-located aliases, so an export re-imports with every row intact.
EXPORT_HEADERS = ["Client first name", "Client second name", "Job Title", "Company", "Current City"]


def format_contacts(contacts: Iterable[ContactRecord]) -> str:
    """Render contacts as CSV in import shape; fields with delimiters, quotes or newlines are quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for contact in contacts:
        writer.writerow([
            contact.first_name,
            contact.last_name,
            contact.job_title,
            contact.company,
            contact.city,
        ])
    return buf.getvalue()
