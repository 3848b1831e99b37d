from __future__ import annotations

from models import ContactRecord


def _normalize_part(value: str | None) -> str:
    return (value or "").strip().lower()


def identity_key(record: ContactRecord) -> str:
    """Stable natural key used to reconcile re-imported records with cached enrichment.

    Two distinct people sharing name and company collide; that is accepted.
    """
    return "|".join(
        _normalize_part(part) for part in (record.first_name, record.last_name, record.company)
    )
