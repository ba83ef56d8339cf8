"""Unit tests for Beacon app lifecycle wiring in beacon.main."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from beacon import main as main_module
from beacon.cache.redis import RedisCache


async def test_lifespan_wires_startup_and_shutdown_in_order(monkeypatch: pytest.MonkeyPatch):
    events: list[str] = []

    async def init_db() -> None:
        events.append("init_db")

    async def close_db() -> None:
        events.append("close_db")

    class FakeKeyManager:
        async def wait_for_background_tasks(self) -> None:
            events.append("drain_key_tasks")

    redis_cache = RedisCache(MagicMock())
    redis_cache.close = AsyncMock(side_effect=lambda: events.append("close_cache"))

    monkeypatch.setattr(main_module, "init_db", init_db)
    monkeypatch.setattr(main_module, "close_db", close_db)
    monkeypatch.setattr(main_module, "configure_logging", lambda config: events.append("logging"))
    monkeypatch.setattr(main_module, "get_key_manager", lambda: FakeKeyManager())
    monkeypatch.setattr(main_module, "get_cache", lambda: redis_cache)

    app = main_module.create_app()
    async with main_module.lifespan(app):
        assert events == ["logging", "init_db"]

    assert events == ["logging", "init_db", "drain_key_tasks", "close_cache", "close_db"]


async def test_memory_cache_is_not_closed(monkeypatch: pytest.MonkeyPatch):
    from beacon.cache.memory import MemoryCache

    async def noop() -> None:
        return None

    key_manager = MagicMock()
    key_manager.wait_for_background_tasks = AsyncMock()

    monkeypatch.setattr(main_module, "init_db", noop)
    monkeypatch.setattr(main_module, "close_db", noop)
    monkeypatch.setattr(main_module, "configure_logging", lambda config: None)
    monkeypatch.setattr(main_module, "get_key_manager", lambda: key_manager)
    monkeypatch.setattr(main_module, "get_cache", lambda: MemoryCache())

    async with main_module.lifespan(main_module.create_app()):
        pass

    key_manager.wait_for_background_tasks.assert_awaited_once()
