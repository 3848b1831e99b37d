from .lookup import LookupGatewayPort, NOT_FOUND_TOKEN, is_not_found_token
from .store import KeyValueStorePort
from .source import SourcePort

__all__ = [
    "LookupGatewayPort",
    "NOT_FOUND_TOKEN",
    "is_not_found_token",
    "KeyValueStorePort",
    "SourcePort",
]
