from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from config.session import SessionConfig
from models import Classified, ContactRecord, ErrorKind, Found, NotFound
from services.errors import ConfigurationError, MissingCredential, UnknownProvider
from services.providers import available_providers, get_provider, provider_for_role
from services.providers.base import extract_json, person_payload
from services.providers.gemini_lookup import GeminiCityLookup
from services.providers.openai_lookup import OpenAICityLookup


def _batch():
    return [
        ContactRecord(id=3, first_name="Ann", last_name="Lee", job_title="CTO", company="Acme"),
        ContactRecord(id=4, first_name="Bob", last_name="", job_title="", company="Globex"),
    ]


def _session(**kw):
    base = dict(credential="gem-key", fallback_credential="oa-key", source_locator="s")
    base.update(kw)
    return SessionConfig(**base)


class _GeminiModels:
    def __init__(self, text=None, exc=None, usage=None):
        self.text, self.exc, self.usage, self.calls = text, exc, usage, []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc:
            raise self.exc
        return SimpleNamespace(text=self.text, usage_metadata=self.usage)


def _gemini(text=None, exc=None, session=None, usage=None):
    client = SimpleNamespace(models=_GeminiModels(text, exc, usage))
    return GeminiCityLookup(session or _session(), client=client), client


def test_person_payload_builds_context():
    payload = person_payload(_batch())
    assert payload == [
        {"id": 3, "person": "Ann Lee", "context": "CTO at Acme"},
        {"id": 4, "person": "Bob", "context": "Globex"},
    ]


def test_extract_json_tolerates_prose_and_fences():
    assert extract_json('Sure! [{"id": 1, "city": "X"}] hope that helps') == [{"id": 1, "city": "X"}]
    assert extract_json('```json\n{"results": []}\n```') == {"results": []}
    assert extract_json("no json here") is None


def test_gemini_maps_found_not_found_and_missing():
    text = json.dumps([{"id": 3, "city": "Paris, FR", "jobTitle": "CTO"}, {"id": 99, "city": "Nowhere"}])
    gw, client = _gemini(text)
    out = gw.lookup(_batch())
    assert out[3] == Found(city="Paris, FR", job_title="CTO")
    assert out[4] == Classified(ErrorKind.SERVICE_ERROR, "No result from AI")
    assert 99 not in out
    call = client.models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    assert '"id": 3' in call["contents"]


def test_gemini_not_found_token_and_blank_city():
    text = json.dumps([{"id": 3, "city": "not found"}, {"id": 4, "city": "  "}])
    gw, _ = _gemini(text)
    out = gw.lookup(_batch())
    assert out == {3: NotFound(), 4: NotFound()}


def test_gemini_malformed_response_downgrades_to_service_error():
    gw, _ = _gemini("I could not do it")
    out = gw.lookup(_batch())
    assert all(o == Classified(ErrorKind.SERVICE_ERROR, "Malformed response") for o in out.values())
    assert set(out) == {3, 4}


@pytest.mark.parametrize(
    "code,status,expected",
    [
        (429, "RESOURCE_EXHAUSTED", ErrorKind.RATE_LIMITED),
        (403, "PERMISSION_DENIED", ErrorKind.INVALID_CREDENTIAL),
        (500, "INTERNAL", ErrorKind.SERVICE_ERROR),
    ],
)
def test_gemini_classifies_api_errors(code, status, expected):
    exc = genai_errors.APIError(code, {"error": {"code": code, "message": "boom", "status": status}})
    gw, _ = _gemini(exc=exc)
    out = gw.lookup(_batch())
    assert {o.kind for o in out.values()} == {expected}


def test_missing_credential_fails_before_any_call():
    gw, client = _gemini("[]", session=_session(credential=None))
    with pytest.raises(MissingCredential):
        gw.lookup(_batch())
    assert client.models.calls == []


class _Completions:
    def __init__(self, content=None, exc=None, usage=None):
        self.content, self.exc, self.usage, self.calls = content, exc, usage, []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc:
            raise self.exc
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=self.usage,
        )


def _openai(content=None, exc=None, usage=None):
    completions = _Completions(content, exc, usage)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAICityLookup(_session(), client=client), completions


def _status_error(cls, status, code=None):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status, request=request)
    body = {"message": "boom", "code": code} if code else None
    return cls("boom", response=response, body=body)


def test_openai_parses_results_envelope_and_uses_json_mode():
    content = json.dumps({"results": [{"id": 3, "city": "Rome, IT", "jobTitle": ""}, {"id": 4, "city": "Not Found", "jobTitle": ""}]})
    gw, completions = _openai(content)
    out = gw.lookup(_batch())
    assert out == {3: Found(city="Rome, IT", job_title=""), 4: NotFound()}
    assert completions.calls[0]["response_format"] == {"type": "json_object"}
    assert completions.calls[0]["model"] == "gpt-4o"


def test_openai_skips_items_with_wrong_types():
    content = json.dumps({"results": [{"id": "x", "city": 5}, {"id": 4, "city": "Oslo, NO", "jobTitle": "Owner"}]})
    gw, _ = _openai(content)
    out = gw.lookup(_batch())
    assert out[3].kind == ErrorKind.SERVICE_ERROR
    assert out[4] == Found(city="Oslo, NO", job_title="Owner")


@pytest.mark.parametrize(
    "exc,expected",
    [
        (lambda: _status_error(openai.AuthenticationError, 401), ErrorKind.INVALID_CREDENTIAL),
        (lambda: _status_error(openai.RateLimitError, 429), ErrorKind.RATE_LIMITED),
        (lambda: _status_error(openai.RateLimitError, 429, code="insufficient_quota"), ErrorKind.SERVICE_ERROR),
        (lambda: _status_error(openai.InternalServerError, 500), ErrorKind.SERVICE_ERROR),
    ],
)
def test_openai_classifies_api_errors(exc, expected):
    gw, _ = _openai(exc=exc())
    out = gw.lookup(_batch())
    assert {o.kind for o in out.values()} == {expected}


def test_registry_resolves_roles_and_rejects_unknown():
    session = _session(primary_provider="gemini", fallback_provider="openai")
    assert {"gemini", "openai", "stub"} <= set(available_providers())
    assert provider_for_role("primary", session).name == "gemini"
    assert provider_for_role("fallback", session).name == "openai"
    with pytest.raises(UnknownProvider):
        get_provider("nope", session)


def test_stub_provider_only_in_test_env(monkeypatch):
    from config.settings import get_settings

    session = _session(primary_provider="stub")
    assert get_provider("stub", session).lookup(_batch())[3] == Found(city="Springfield, US")
    monkeypatch.setenv("RUN_ENV", "local")
    get_settings.cache_clear()
    with pytest.raises(ConfigurationError):
        get_provider("stub", session)


def _last_trace(path):
    return json.loads(path.read_text(encoding="utf-8").strip().splitlines()[-1])


def test_gemini_token_usage_reaches_trace(tmp_path, monkeypatch):
    log_file = tmp_path / "calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "1")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    usage = SimpleNamespace(prompt_token_count=120, candidates_token_count=30, total_token_count=150)
    gw, _ = _gemini(json.dumps([{"id": 3, "city": "Paris, FR"}]), usage=usage)
    gw.lookup(_batch())
    assert _last_trace(log_file)["usage"] == {"prompt_tokens": 120, "completion_tokens": 30, "total_tokens": 150}


def test_openai_token_usage_reaches_trace(tmp_path, monkeypatch):
    log_file = tmp_path / "calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "1")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    usage = SimpleNamespace(prompt_tokens=80, completion_tokens=20, total_tokens=100)
    gw, _ = _openai(json.dumps({"results": [{"id": 3, "city": "Rome, IT"}]}), usage=usage)
    gw.lookup(_batch())
    assert _last_trace(log_file)["usage"] == {"prompt_tokens": 80, "completion_tokens": 20, "total_tokens": 100}

    # Failed calls carry no usage
    gw_err, _ = _openai(exc=_status_error(openai.InternalServerError, 500))
    gw_err.lookup(_batch())
    assert _last_trace(log_file)["usage"] == {}
