from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from config.session import SessionConfig
from config.settings import Settings, get_settings
from models import CityLookupItem, Classified, ContactRecord, ErrorKind, Found, NotFound, Outcome
from ports.lookup import NOT_FOUND_TOKEN, is_not_found_token
from services.errors import MissingCredential
from utils.llm_logger import log_call, sha256_text


logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
You are an expert researcher. For every professional in INPUT_DATA, find the city they currently live or work in and their most current job title.

RULES:
1. Prefer professional social profiles (such as LinkedIn) and official company websites as sources.
2. If a precise search fails, try broader searches before giving up.
3. "city" must look like "San Francisco, CA" or "London, UK". If no city can be reliably established, "city" MUST be exactly "{not_found}".
4. "jobTitle" is the most current job title found, or "" when unknown.

OUTPUT:
{output_rules}
Every person from the input must appear exactly once with their original numeric "id".

INPUT_DATA:
{payload}
""".strip()


def person_payload(batch: Sequence[ContactRecord]) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for record in batch:
        if record.job_title and record.company:
            context = f"{record.job_title} at {record.company}"
        else:
            context = record.job_title or record.company
        payload.append({"id": record.id, "person": record.display_name, "context": context})
    return payload


def build_prompt(batch: Sequence[ContactRecord], output_rules: str) -> str:
    return PROMPT_TEMPLATE.format(
        not_found=NOT_FOUND_TOKEN,
        output_rules=output_rules,
        payload=json.dumps(person_payload(batch), indent=2, ensure_ascii=False),
    )


def extract_json(text: Optional[str]) -> Any:
    """Best-effort JSON extraction from model text that may carry prose or fences."""
    if not text:
        return None
    text = text.strip()
    try:
        return json.loads(text)
    except ValueError:
        pass
    m = re.search(r"```(?:json)?\s*\n([\s\S]*?)\n```", text)
    if m:
        try:
            return json.loads(m.group(1))
        except ValueError:
            pass
    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except ValueError:
                continue
    return None


def parse_items(payload: Any) -> Optional[List[CityLookupItem]]:
    """Accept a bare array or a {"results": [...]} envelope; None when neither."""
    if isinstance(payload, dict):
        payload = payload.get("results")
    if not isinstance(payload, list):
        return None
    items: List[CityLookupItem] = []
    for raw in payload:
        try:
            items.append(CityLookupItem.model_validate(raw))
        except ValidationError:
            continue
    return items


def outcome_for_item(item: CityLookupItem) -> Outcome:
    city = item.city.strip()
    if not city or is_not_found_token(city):
        return NotFound()
    return Found(city=city, job_title=item.job_title.strip())


def outcomes_from_items(batch: Sequence[ContactRecord], items: Optional[List[CityLookupItem]]) -> Dict[int, Outcome]:
    if items is None:
        return classify_all(batch, ErrorKind.SERVICE_ERROR, "Malformed response")
    wanted = {r.id for r in batch}
    result: Dict[int, Outcome] = {}
    for item in items:
        if item.id in wanted:
            result[item.id] = outcome_for_item(item)
    for record in batch:
        result.setdefault(record.id, Classified(ErrorKind.SERVICE_ERROR, "No result from AI"))
    return result


def classify_all(batch: Sequence[ContactRecord], kind: ErrorKind, message: Optional[str] = None) -> Dict[int, Outcome]:
    outcome = Classified(kind, message)
    return {record.id: outcome for record in batch}


class BaseCityLookup:
    """Shared envelope for provider adapters: credential check, timing, trace logging."""

    name = "base"
    operation = "city_lookup"

    def __init__(self, session: SessionConfig, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        # Token usage of the latest call, filled in by _lookup when the SDK reports it
        self.last_usage: Optional[Dict[str, Any]] = None

    @property
    def model(self) -> Optional[str]:
        return None

    def _credential(self) -> str:
        api_key = self.session.credential_for(self.name)
        if not api_key:
            raise MissingCredential(f"No API key configured for provider '{self.name}'")
        return api_key

    def lookup(self, batch: Sequence[ContactRecord]) -> Dict[int, Outcome]:
        api_key = self._credential()
        if not batch:
            return {}
        prompt = self.build_prompt(batch)
        self.last_usage = None
        t0 = time.time()
        outcomes = self._lookup(api_key, batch, prompt)
        duration_ms = int((time.time() - t0) * 1000)
        errors = [o for o in outcomes.values() if isinstance(o, Classified)]
        status = errors[0].kind.value if errors and len(errors) == len(outcomes) else "ok"
        log_call(
            caller=f"providers.{self.name}.lookup",
            provider=self.name,
            model=self.model,
            operation=self.operation,
            prompt_name="city_lookup",
            prompt_hash=sha256_text(prompt),
            duration_ms=duration_ms,
            status=status,
            error=errors[0].message if errors else None,
            usage=self.last_usage,
            extras={"batch_size": len(batch), "ids": [r.id for r in batch]},
        )
        return outcomes

    def build_prompt(self, batch: Sequence[ContactRecord]) -> str:
        raise NotImplementedError

    def _lookup(self, api_key: str, batch: Sequence[ContactRecord], prompt: str) -> Dict[int, Outcome]:
        raise NotImplementedError
