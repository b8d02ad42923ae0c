"""Shared pytest fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from cart import LineItem
from config import get_settings


@dataclass
class FakeStorage:
    """In-memory stand-in for CartStorage that records every save."""

    items: list[LineItem] = field(default_factory=list)
    saves: list[list[LineItem]] = field(default_factory=list)

    def load(self) -> list[LineItem]:
        return list(self.items)

    def save(self, items) -> None:
        self.items = list(items)
        self.saves.append(list(items))


@pytest.fixture(autouse=True)
def _test_env_vars(monkeypatch, tmp_path: Path):
    """Keep settings local and deterministic for every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "0")
    monkeypatch.setenv("SIMULATED_LATENCY", "0")
    monkeypatch.setenv("CART_PATH", str(tmp_path / "cart.json"))
    monkeypatch.setenv("API_BASE_URL", "http://testserver/api")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()
