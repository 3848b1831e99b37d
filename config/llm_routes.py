from __future__ import annotations

import os


# Central routing for city lookups. Edit here to change per-provider defaults.
# Model names can be overridden per provider via env vars for quick testing.
#
# Keys are provider names registered in services/providers/registry.py
ROUTES: dict[str, dict] = {
    # Primary: Gemini with Google Search grounding
    "gemini": {
        "model": os.getenv("GEMINI_MODEL"),  # falls back to settings.gemini_model
        "default_model": "gemini-2.5-flash",
        # Logical operation name for logging (not a vendor API name)
        "operation": "city_lookup.grounded_search",
    },
    # Fallback: OpenAI chat completions in JSON mode
    "openai": {
        "model": os.getenv("OPENAI_MODEL"),
        "default_model": "gpt-4o",
        "operation": "city_lookup.chat_json",
    },
}


def route_for(provider: str) -> dict:
    return ROUTES.get(provider, {})
