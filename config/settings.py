from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str | None
    openai_api_key: str | None
    gemini_model: str
    openai_model: str

    # Provider roles
    primary_provider: str  # gemini | openai | stub
    fallback_provider: str

    # Pacing/batching
    batch_size: int
    pacing_seconds: float
    quota_window_seconds: float

    # Source
    source_kind: str  # google_sheet | file
    source_locator: str | None
    http_timeout_seconds: int

    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # Logging/tracing
    llm_trace: bool = False
    llm_log_path: str = "logs/llm_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    batch_size = int(os.getenv("LOOKUP_BATCH_SIZE", "5"))
    if batch_size < 1:
        raise RuntimeError("LOOKUP_BATCH_SIZE must be at least 1")
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        primary_provider=os.getenv("LOOKUP_PRIMARY_PROVIDER", "gemini").lower(),
        fallback_provider=os.getenv("LOOKUP_FALLBACK_PROVIDER", "openai").lower(),
        batch_size=batch_size,
        pacing_seconds=float(os.getenv("LOOKUP_PACING_SECONDS", "10")),
        quota_window_seconds=float(os.getenv("QUOTA_WINDOW_SECONDS", "60")),
        source_kind=os.getenv("SOURCE_KIND", "google_sheet"),
        source_locator=os.getenv("SOURCE_LOCATOR") or os.getenv("SHEET_ID"),
        http_timeout_seconds=int(os.getenv("HTTP_TIMEOUT_SECONDS", "20")),
        db_path=os.getenv("DB_PATH", "enrichment.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        llm_trace=_as_bool(os.getenv("LLM_TRACE", "false")),
        llm_log_path=os.getenv("LLM_LOG_PATH", "logs/llm_calls.jsonl"),
    )
