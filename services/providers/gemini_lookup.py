from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config.llm_routes import route_for
from models import ContactRecord, ErrorKind, Outcome
from services.providers.base import BaseCityLookup, build_prompt, classify_all, extract_json, outcomes_from_items, parse_items


logger = logging.getLogger(__name__)

OUTPUT_RULES = (
    "Respond with ONLY a raw JSON array of objects with keys \"id\" (number), \"city\" (string) and "
    "\"jobTitle\" (string). No introduction, no explanation, no markdown fences."
)

_INVALID_KEY_STATUSES = {"PERMISSION_DENIED", "UNAUTHENTICATED"}


def classify_api_error(exc: genai_errors.APIError) -> ErrorKind:
    code = getattr(exc, "code", None)
    status = (getattr(exc, "status", None) or "").upper()
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return ErrorKind.RATE_LIMITED
    if code in (401, 403) or status in _INVALID_KEY_STATUSES:
        return ErrorKind.INVALID_CREDENTIAL
    # Gemini reports a bad key as 400 INVALID_ARGUMENT with reason API_KEY_INVALID
    detail = str(exc)
    if "API_KEY_INVALID" in detail or "API key not valid" in detail:
        return ErrorKind.INVALID_CREDENTIAL
    return ErrorKind.SERVICE_ERROR


def usage_from_response(response) -> Optional[Dict[str, Any]]:
    meta = getattr(response, "usage_metadata", None)
    if meta is None:
        return None
    return {
        "prompt_tokens": getattr(meta, "prompt_token_count", None),
        "completion_tokens": getattr(meta, "candidates_token_count", None),
        "total_tokens": getattr(meta, "total_token_count", None),
    }


class GeminiCityLookup(BaseCityLookup):
    """Primary provider: Gemini with Google Search grounding."""

    name = "gemini"
    operation = "city_lookup.grounded_search"

    def __init__(self, session, settings=None, client: Optional[genai.Client] = None) -> None:
        super().__init__(session, settings)
        self._client = client

    @property
    def model(self) -> str:
        route = route_for(self.name)
        return route.get("model") or self.settings.gemini_model or route.get("default_model")

    def build_prompt(self, batch: Sequence[ContactRecord]) -> str:
        return build_prompt(batch, OUTPUT_RULES)

    def _client_for(self, api_key: str) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=api_key)
        return self._client

    def _lookup(self, api_key: str, batch: Sequence[ContactRecord], prompt: str) -> Dict[int, Outcome]:
        try:
            response = self._client_for(api_key).models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                ),
            )
        except genai_errors.APIError as e:
            kind = classify_api_error(e)
            logger.error(f"Gemini API error: {e}", extra={"provider": self.name, "error": kind.value})
            return classify_all(batch, kind, f"API Error: {getattr(e, 'message', None) or e}")
        except Exception as e:
            logger.error(f"Gemini call failed: {e}", extra={"provider": self.name, "error": "service_error"})
            return classify_all(batch, ErrorKind.SERVICE_ERROR, f"API Error: {e}")

        self.last_usage = usage_from_response(response)
        text = getattr(response, "text", None)
        items = parse_items(extract_json(text))
        if items is None:
            logger.error(
                "Could not find a valid JSON array in the Gemini response",
                extra={"provider": self.name, "error": "malformed"},
            )
        return outcomes_from_items(batch, items)
