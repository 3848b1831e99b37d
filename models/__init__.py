from .contact_record import ContactRecord, EnrichmentStatus
from .cache_entry import CacheEntry
from .lookup_outcome import Classified, ErrorKind, FATAL_KINDS, Found, NotFound, Outcome
from .city_lookup_result import CityLookupItem, CityLookupResponse

__all__ = [
    "ContactRecord",
    "EnrichmentStatus",
    "CacheEntry",
    "Classified",
    "ErrorKind",
    "FATAL_KINDS",
    "Found",
    "NotFound",
    "Outcome",
    "CityLookupItem",
    "CityLookupResponse",
]
