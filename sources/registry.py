from __future__ import annotations

from typing import Callable, Dict

from ports.source import SourcePort
from services.errors import SourceUnavailable


SourceFactory = Callable[[], SourcePort]

_REGISTRY: Dict[str, SourceFactory] = {}


def register(name: str, factory: SourceFactory) -> None:
    _REGISTRY[name] = factory


def get_source(name: str) -> SourcePort:
    if name not in _REGISTRY:
        known = ", ".join(sorted(_REGISTRY)) or "none"
        raise SourceUnavailable(f"Unknown source kind: {name} (known: {known})")
    return _REGISTRY[name]()


def available_sources() -> Dict[str, SourceFactory]:
    return dict(_REGISTRY)
