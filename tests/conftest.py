from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'services.scheduler'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    # Settings are lru_cached; tests tweak env between calls
    monkeypatch.setenv("RUN_ENV", "test")
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class MemoryStore:
    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


class FakeGateway:
    """Scripted lookup gateway: `responder(call_index, batch)` returns the outcomes."""

    def __init__(self, name: str = "gemini", responder: Callable | None = None) -> None:
        self.name = name
        self.calls: List[List[int]] = []
        self.responder = responder

    def lookup(self, batch: Sequence):
        self.calls.append([r.id for r in batch])
        return self.responder(len(self.calls) - 1, batch)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def make_contacts():
    from models import ContactRecord

    def _make(n: int, **overrides) -> List[ContactRecord]:
        return [
            ContactRecord(
                id=i,
                first_name=f"First{i}",
                last_name=f"Last{i}",
                job_title="Engineer",
                company=f"Co{i}",
                **overrides,
            )
            for i in range(n)
        ]

    return _make


@pytest.fixture
def fake_gateway():
    return FakeGateway
