from __future__ import annotations

import json

from config.session import SessionConfig
from models import ContactRecord
from services.providers import get_provider
from utils.llm_logger import log_call


def test_llm_trace_writes_jsonl(tmp_path, monkeypatch):
    log_file = tmp_path / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "true")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    monkeypatch.setenv("RUN_ID", "test-run-123")

    log_call(
        caller="unit.test",
        provider="gemini",
        model="gemini-x",
        operation="city_lookup.grounded_search",
        prompt_name="city_lookup",
        prompt_hash="abc",
        duration_ms=42,
        status="ok",
        extras={"batch_size": 5},
    )

    lines = log_file.read_text(encoding="utf-8").strip().splitlines()
    rec = json.loads(lines[-1])
    assert rec["caller"] == "unit.test"
    assert rec["provider"] == "gemini"
    assert rec["run_id"] == "test-run-123"
    assert rec["extras"]["batch_size"] == 5


def test_trace_disabled_writes_nothing(tmp_path, monkeypatch):
    log_file = tmp_path / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "false")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    log_call(caller="x", provider="openai", model=None, operation="op")
    assert not log_file.exists()


def test_provider_lookup_is_traced(tmp_path, monkeypatch):
    log_file = tmp_path / "trace" / "calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "1")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    gw = get_provider("stub", SessionConfig(primary_provider="stub"))
    gw.lookup([ContactRecord(id=0, first_name="Ann", company="Acme")])
    rec = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert rec["provider"] == "stub"
    assert rec["status"] == "ok"
    assert rec["extras"]["ids"] == [0]


def test_usage_for_run_totals_calls_errors_and_tokens(tmp_path, monkeypatch):
    from services.reporting import _llm_usage_for_run
    from utils.llm_logger import iter_calls

    log_file = tmp_path / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "true")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))

    monkeypatch.setenv("RUN_ID", "run-a")
    log_call(caller="c", provider="gemini", model="m", operation="op", usage={"total_tokens": 150})
    log_call(caller="c", provider="gemini", model="m", operation="op", status="rate_limited")
    monkeypatch.setenv("RUN_ID", "run-b")
    log_call(caller="c", provider="openai", model="m", operation="op", usage={"total_tokens": 40})
    with log_file.open("a", encoding="utf-8") as f:
        f.write("not json\n")

    assert len(list(iter_calls())) == 3
    assert _llm_usage_for_run("run-a") == {"gemini": {"calls": 2, "errors": 1, "tokens": 150}}
    assert _llm_usage_for_run("run-b") == {"openai": {"calls": 1, "errors": 0, "tokens": 40}}
