from __future__ import annotations

import csv
import io
import logging
from typing import List, Optional, Sequence

from models import ContactRecord, EnrichmentStatus
from services.errors import ColumnMappingError, FormatError


FIRST_NAME_HEADER = "client first name"
LAST_NAME_HEADER = "client second name"
JOB_TITLE_HEADER = "job title"
COMPANY_HEADER = "company"
# Rows with a value in any of these columns are already located upstream.
# Checked in priority order.
LOCATED_HEADER_ALIASES = ("identified city", "city")

logger = logging.getLogger(__name__)


def _read_rows(raw_text: str) -> List[List[str]]:
    # BOM from spreadsheet exports breaks the first header otherwise
    if raw_text.startswith("\ufeff"):
        raw_text = raw_text[1:]
    reader = csv.reader(io.StringIO(raw_text.strip()), skipinitialspace=True)
    return [[value.strip() for value in row] for row in reader]


def _find_header_row(rows: Sequence[List[str]]) -> int:
    for index, row in enumerate(rows):
        line = ",".join(row).lower()
        if FIRST_NAME_HEADER in line and LAST_NAME_HEADER in line:
            return index
    raise FormatError(
        'CSV headers are missing or incorrect. Expected at least "Client first name" and "Client second name".'
    )


def _index_of(headers: Sequence[str], name: str) -> Optional[int]:
    try:
        return headers.index(name)
    except ValueError:
        return None


def _located_index(headers: Sequence[str]) -> Optional[int]:
    for alias in LOCATED_HEADER_ALIASES:
        idx = _index_of(headers, alias)
        if idx is not None:
            return idx
    return None


def _value(values: Sequence[str], idx: Optional[int]) -> str:
    if idx is None or idx >= len(values):
        return ""
    return values[idx]


def parse_contacts(raw_text: str) -> List[ContactRecord]:
    """Parse a spreadsheet CSV export into ordered, uniquely-identified contacts.

    The header row is located dynamically so leading metadata rows are tolerated.
    Blank rows and rows already carrying a city are dropped silently. Record ids
    are zero-based positions among the emitted records.
    """
    rows = _read_rows(raw_text or "")
    header_idx = _find_header_row(rows)
    headers = [h.lower() for h in rows[header_idx]]

    first_idx = _index_of(headers, FIRST_NAME_HEADER)
    last_idx = _index_of(headers, LAST_NAME_HEADER)
    if first_idx is None or last_idx is None:
        raise ColumnMappingError(
            f"Could not map all required CSV columns. Found headers: [{', '.join(headers)}]",
            headers=headers,
        )
    title_idx = _index_of(headers, JOB_TITLE_HEADER)
    company_idx = _index_of(headers, COMPANY_HEADER)
    located_idx = _located_index(headers)

    contacts: List[ContactRecord] = []
    skipped_located = 0
    for values in rows[header_idx + 1:]:
        if not any(values):
            continue
        if located_idx is not None and _value(values, located_idx):
            skipped_located += 1
            continue
        contacts.append(
            ContactRecord(
                id=len(contacts),
                first_name=_value(values, first_idx),
                last_name=_value(values, last_idx),
                job_title=_value(values, title_idx),
                company=_value(values, company_idx),
                city="",
                status=EnrichmentStatus.IDLE,
            )
        )
    logger.info(f"Imported {len(contacts)} contacts (skipped {skipped_located} already located)")
    return contacts
