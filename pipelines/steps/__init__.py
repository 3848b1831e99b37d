from .load_contacts import FetchSource, ImportContacts, MergeCachedEnrichment
from .enrich_contacts import EnrichContacts

__all__ = ["FetchSource", "ImportContacts", "MergeCachedEnrichment", "EnrichContacts"]
