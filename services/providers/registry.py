from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from config.session import SessionConfig
from config.settings import Settings, get_settings
from ports.lookup import LookupGatewayPort
from services.errors import UnknownProvider


ProviderFactory = Callable[[SessionConfig, Settings], LookupGatewayPort]

_REGISTRY: Dict[str, ProviderFactory] = {}


def register(name: str, factory: ProviderFactory) -> None:
    _REGISTRY[name] = factory


def get_provider(name: str, session: SessionConfig, settings: Optional[Settings] = None) -> LookupGatewayPort:
    if name not in _REGISTRY:
        raise UnknownProvider(f"Unknown lookup provider: {name}")
    return _REGISTRY[name](session, settings or get_settings())


def provider_for_role(role: str, session: SessionConfig, settings: Optional[Settings] = None) -> LookupGatewayPort:
    """Resolve 'primary' or 'fallback' to the provider the session assigns that role."""
    return get_provider(session.provider_for(role), session, settings)


def available_providers() -> Dict[str, Any]:
    return dict(_REGISTRY)
