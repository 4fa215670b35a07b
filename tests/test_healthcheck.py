"""Unit tests for src/healthcheck.py — no real API calls."""

import asyncio
from unittest.mock import AsyncMock

import src.healthcheck as hc
from src.healthcheck import check_panel, ping_params
from src.models import GenerationParams, ModelSpec
from src.providers.base import ProviderError

from tests.conftest import MockProvider, make_panel


async def test_all_members_pass_in_panel_order():
    panel = make_panel("a", "b")

    results = await check_panel(panel)

    assert [r.spec.stage for r in results] == ["model1", "model2"]
    assert [r.spec.id for r in results] == ["vendor/m1", "vendor/m2"]
    assert all(r.ok and r.error == "" for r in results)


async def test_failing_member_reports_error():
    panel = make_panel("a", "b")
    panel[1].generate = AsyncMock(side_effect=ProviderError("m2", "403 Forbidden"))

    first, second = await check_panel(panel)

    assert first.ok is True
    assert second.ok is False
    assert "403" in second.error
    assert second.name == panel[1].name()


async def test_ping_keeps_temperature_and_trims_tokens():
    provider = MockProvider("microsoft/phi")

    await check_panel([provider])

    _prompt, params = provider.generate.await_args.args
    assert params == GenerationParams(max_tokens=5, temperature=0.3)


def test_ping_params_never_raise_small_budgets():
    spec = ModelSpec("vendor/x", "X", "model1", GenerationParams(max_tokens=2, temperature=0.9))
    assert ping_params(spec) == GenerationParams(max_tokens=2, temperature=0.9)


async def test_empty_panel():
    assert await check_panel([]) == []


async def test_timeout_counts_as_failure(monkeypatch):
    """A member that hangs past the timeout is marked as failed."""
    slow = MockProvider("vendor/slow")

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    slow.generate = AsyncMock(side_effect=hang)
    monkeypatch.setattr(hc, "_TIMEOUT_SEC", 0.05)

    (result,) = await check_panel([slow])

    assert result.ok is False
    assert "No reply" in result.error
