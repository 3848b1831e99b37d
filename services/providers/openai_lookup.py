from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import openai
from openai import OpenAI

from config.llm_routes import route_for
from models import ContactRecord, ErrorKind, Outcome
from services.providers.base import BaseCityLookup, build_prompt, classify_all, extract_json, outcomes_from_items, parse_items


logger = logging.getLogger(__name__)

OUTPUT_RULES = (
    "Your entire response must be a single JSON object with one key, \"results\", whose value is an array. "
    "Each element holds the person's original \"id\" (number), the found \"city\" (string) and the found "
    "\"jobTitle\" (string)."
)


def classify_api_error(exc: openai.APIError) -> tuple[ErrorKind, str]:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.INVALID_CREDENTIAL, "Invalid API Key"
    if isinstance(exc, openai.RateLimitError):
        # Billing exhaustion shares the 429 status but will not clear by waiting
        if getattr(exc, "code", None) == "insufficient_quota":
            return ErrorKind.SERVICE_ERROR, "Insufficient Quota"
        return ErrorKind.RATE_LIMITED, "Rate Limit Exceeded"
    if isinstance(exc, openai.APIStatusError):
        return ErrorKind.SERVICE_ERROR, f"API Error: Status {exc.status_code} - {exc.message}"
    return ErrorKind.SERVICE_ERROR, f"API Error: {exc}"


def usage_from_response(resp) -> Optional[Dict[str, Any]]:
    usage = getattr(resp, "usage", None)
    if usage is None:
        return None
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", None),
        "completion_tokens": getattr(usage, "completion_tokens", None),
        "total_tokens": getattr(usage, "total_tokens", None),
    }


class OpenAICityLookup(BaseCityLookup):
    """Fallback provider: OpenAI chat completions in JSON mode."""

    name = "openai"
    operation = "city_lookup.chat_json"

    def __init__(self, session, settings=None, client: Optional[OpenAI] = None) -> None:
        super().__init__(session, settings)
        self._client = client

    @property
    def model(self) -> str:
        route = route_for(self.name)
        return route.get("model") or self.settings.openai_model or route.get("default_model")

    def build_prompt(self, batch: Sequence[ContactRecord]) -> str:
        return build_prompt(batch, OUTPUT_RULES)

    def _client_for(self, api_key: str) -> OpenAI:
        if self._client is None:
            # Retry policy belongs to the scheduler
            self._client = OpenAI(api_key=api_key, max_retries=0, timeout=self.settings.http_timeout_seconds * 3)
        return self._client

    def _lookup(self, api_key: str, batch: Sequence[ContactRecord], prompt: str) -> Dict[int, Outcome]:
        try:
            resp = self._client_for(api_key).chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            kind, message = classify_api_error(e)
            logger.error(f"OpenAI API error: {e}", extra={"provider": self.name, "error": kind.value})
            return classify_all(batch, kind, message)

        self.last_usage = usage_from_response(resp)
        content = resp.choices[0].message.content if resp.choices else None
        items = parse_items(extract_json(content))
        if items is None:
            logger.error("OpenAI response had no results array", extra={"provider": self.name, "error": "malformed"})
        return outcomes_from_items(batch, items)
