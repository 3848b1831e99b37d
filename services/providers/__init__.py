from __future__ import annotations

from services.errors import ConfigurationError

from .registry import available_providers, get_provider, provider_for_role, register


def _gemini_factory(session, settings):
    from .gemini_lookup import GeminiCityLookup
    return GeminiCityLookup(session, settings)


def _openai_factory(session, settings):
    from .openai_lookup import OpenAICityLookup
    return OpenAICityLookup(session, settings)


def _stub_factory(session, settings):
    # Stub provider allowed only in test environment
    if (settings.run_env or "").lower() != "test":
        raise ConfigurationError("Stub lookup provider is only allowed when RUN_ENV=test")
    from .stub_lookup import StubCityLookup
    return StubCityLookup(session, settings)


register("gemini", _gemini_factory)
register("openai", _openai_factory)
register("stub", _stub_factory)

__all__ = ["available_providers", "get_provider", "provider_for_role", "register"]
