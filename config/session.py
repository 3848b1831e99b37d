from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings
from ports.store import KeyValueStorePort


# Fixed logical keys in the key-value store
CREDENTIAL_KEY = "credential"
SOURCE_LOCATOR_KEY = "source_locator"
CACHE_KEY = "enrichment_cache"
RATE_LIMIT_HISTORY_KEY = "rate_limit_history"


@dataclass
class SessionConfig:
    """Per-session configuration handed to providers and the scheduler.

    `credential` belongs to the primary provider and is the one persisted in
    the key-value store; `fallback_credential` only ever comes from the
    environment. Both are cleared through invalidate_credential(), which
    callers invoke after a provider reports its key as invalid.
    """

    credential: Optional[str] = None
    source_locator: Optional[str] = None
    fallback_credential: Optional[str] = None
    batch_size: int = 5
    pacing_seconds: float = 10.0
    quota_window_seconds: float = 60.0
    primary_provider: str = "gemini"
    fallback_provider: str = "openai"

    @property
    def is_configured(self) -> bool:
        return bool(self.credential) and bool(self.source_locator)

    def provider_for(self, role: str) -> str:
        if role == "primary":
            return self.primary_provider
        if role == "fallback":
            return self.fallback_provider
        raise ValueError(f"Unknown provider role: {role}")

    def credential_for(self, provider: str) -> Optional[str]:
        if provider == self.primary_provider:
            return self.credential
        if provider == self.fallback_provider:
            return self.fallback_credential
        return None

    def invalidate_credential(self, provider: Optional[str] = None) -> None:
        if provider is None or provider == self.primary_provider:
            self.credential = None
        if provider is not None and provider == self.fallback_provider:
            self.fallback_credential = None


def _env_credential(settings: Settings, provider: str) -> Optional[str]:
    if provider == "gemini":
        return settings.gemini_api_key
    if provider == "openai":
        return settings.openai_api_key
    return None


def load_session(store: KeyValueStorePort, settings: Optional[Settings] = None) -> SessionConfig:
    """Build a SessionConfig; stored values win over environment defaults."""
    settings = settings or get_settings()
    credential = store.get(CREDENTIAL_KEY) or _env_credential(settings, settings.primary_provider)
    locator = store.get(SOURCE_LOCATOR_KEY) or settings.source_locator
    return SessionConfig(
        credential=credential,
        source_locator=locator,
        fallback_credential=_env_credential(settings, settings.fallback_provider),
        batch_size=settings.batch_size,
        pacing_seconds=settings.pacing_seconds,
        quota_window_seconds=settings.quota_window_seconds,
        primary_provider=settings.primary_provider,
        fallback_provider=settings.fallback_provider,
    )
