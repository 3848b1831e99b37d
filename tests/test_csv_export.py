from __future__ import annotations

from models import ContactRecord, EnrichmentStatus
from services.csv_export import EXPORT_HEADERS, format_contacts
from services.csv_import import parse_contacts


def test_export_header_and_field_order():
    contacts = [ContactRecord(id=0, first_name="Ann", last_name="Lee", job_title="CTO", company="Acme", city="Paris, FR",
                              status=EnrichmentStatus.FOUND)]
    lines = format_contacts(contacts).splitlines()
    assert lines[0] == ",".join(EXPORT_HEADERS)
    assert lines[1] == 'Ann,Lee,CTO,Acme,"Paris, FR"'


def test_quotes_are_doubled_and_plain_fields_unquoted():
    contacts = [ContactRecord(id=0, first_name='Jo "JJ"', last_name="Smith", company="Acme")]
    assert format_contacts(contacts).splitlines()[1] == '"Jo ""JJ""",Smith,,Acme,'


def test_round_trip_preserves_commas_quotes_and_newlines():
    original = [
        ContactRecord(id=0, first_name="Ann", last_name="O'Neil, Jr.", job_title='Head of "Growth"', company="Acme"),
        ContactRecord(id=1, first_name="Bo", last_name="Ng", job_title="Line one\nLine two", company="Initech, LLC"),
        ContactRecord(id=2, first_name="Cy", last_name="Moe", job_title="", company=""),
    ]
    reimported = parse_contacts(format_contacts(original))
    assert [(c.id, c.first_name, c.last_name, c.job_title, c.company) for c in reimported] == [
        (c.id, c.first_name, c.last_name, c.job_title, c.company) for c in original
    ]


def test_enriched_rows_are_not_dropped_on_reimport():
    text = "Client first name,Client second name,Job Title,Company\nAnn,Lee,,Acme\nBob,Ray,CEO,Globex\n"
    contacts = parse_contacts(text)
    contacts[0].city = "Paris, FR"
    contacts[0].status = EnrichmentStatus.FOUND
    again = parse_contacts(format_contacts(contacts))
    assert [c.first_name for c in again] == ["Ann", "Bob"]
    assert all(c.city == "" for c in again)
