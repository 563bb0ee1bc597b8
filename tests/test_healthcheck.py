"""Unit tests for roundtable/healthcheck.py. No real API calls."""

import asyncio
from unittest.mock import AsyncMock

from roundtable.healthcheck import run_health_checks
from tests.conftest import MockProvider


async def test_all_providers_pass():
    providers = {"claude": MockProvider("claude"), "gemini": MockProvider("gemini")}

    results = await run_health_checks(providers)

    assert results == {"claude": (True, ""), "gemini": (True, "")}


async def test_unavailable_provider_fails():
    providers = {"claude": MockProvider("claude"), "ollama": MockProvider("ollama", available=False)}

    results = await run_health_checks(providers)

    assert results["claude"] == (True, "")
    ok, err = results["ollama"]
    assert ok is False
    assert "not available" in err


async def test_check_that_raises_reports_error():
    broken = MockProvider("openai")
    broken.is_available = AsyncMock(side_effect=RuntimeError("DNS failure"))

    results = await run_health_checks({"openai": broken})

    assert results["openai"] == (False, "DNS failure")


async def test_check_does_not_call_generate():
    provider = MockProvider("claude")
    await run_health_checks({"claude": provider})
    provider.generate.assert_not_awaited()


async def test_checks_run_in_parallel():
    started: list[str] = []
    release = asyncio.Event()

    def slow_check(name: str):
        async def check() -> bool:
            started.append(name)
            await release.wait()
            return True

        return check

    providers = {n: MockProvider(n) for n in ("a", "b")}
    for name, provider in providers.items():
        provider.is_available = slow_check(name)

    task = asyncio.create_task(run_health_checks(providers))
    while len(started) < 2:
        await asyncio.sleep(0)
    release.set()

    assert await task == {"a": (True, ""), "b": (True, "")}


async def test_empty_provider_dict():
    assert await run_health_checks({}) == {}
