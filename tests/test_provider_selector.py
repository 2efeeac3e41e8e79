"""Tests for ProviderSelector primary/fallback behaviour.

Providers are in-process fakes; no network calls are made.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from truck_assistant.ai.providers.base import AIProvider, ProviderError
from truck_assistant.ai.schemas import ChatMessage, DiagnosisRequest, DiagnosisResult
from truck_assistant.ai.selector import (
    AllProvidersUnavailable,
    ProviderSelector,
    UnknownProvider,
)


class FakeProvider(AIProvider):
    """Configurable stand-in for a real provider client."""

    def __init__(
        self,
        name: str,
        configured: bool = True,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        reply: str = "ok",
    ) -> None:
        self.name = name
        self._configured = configured
        self._error = error
        self._delay = delay
        self._reply = reply
        self.calls = 0

    def missing_configuration(self) -> List[str]:
        return [] if self._configured else ["SOME_KEY"]

    async def _maybe_fail(self) -> None:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error

    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisResult:
        await self._maybe_fail()
        return DiagnosisResult(diagnosis=f"from {self.name}", confidence=80)

    async def chat(self, messages: List[ChatMessage]) -> str:
        await self._maybe_fail()
        return f"{self._reply} from {self.name}"

    async def ping(self) -> None:
        await self._maybe_fail()


def _request() -> DiagnosisRequest:
    return DiagnosisRequest.model_validate(
        {"truck": {"make": "Volvo", "model": "VNL"}, "symptoms": ["Hard starting"]}
    )


def _selector(foundry: FakeProvider, openai: FakeProvider, github: Optional[FakeProvider] = None, **kw):
    providers = {
        "azure-ai-foundry": foundry,
        "azure-openai": openai,
        "github-models": github or FakeProvider("github-models"),
    }
    return ProviderSelector(providers, primary="azure-ai-foundry", fallback="azure-openai", **kw)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_primary_success_does_not_use_fallback() -> None:
    foundry, openai = FakeProvider("azure-ai-foundry"), FakeProvider("azure-openai")
    outcome = await _selector(foundry, openai).diagnose(_request())

    assert outcome.provider == "azure-ai-foundry"
    assert outcome.fallback_used is False
    assert outcome.result.diagnosis == "from azure-ai-foundry"
    assert openai.calls == 0
    assert [a.outcome for a in outcome.attempts] == ["success"]


@pytest.mark.asyncio
async def test_primary_failure_falls_back_once() -> None:
    foundry = FakeProvider("azure-ai-foundry", error=ProviderError("boom"))
    openai = FakeProvider("azure-openai")
    outcome = await _selector(foundry, openai).chat([ChatMessage(role="user", content="hi")])

    assert outcome.provider == "azure-openai"
    assert outcome.fallback_used is True
    assert outcome.result == "ok from azure-openai"
    assert outcome.attempts[0].outcome == "failure"
    assert outcome.attempts[0].reason == "boom"


@pytest.mark.asyncio
async def test_unconfigured_primary_is_skipped() -> None:
    foundry = FakeProvider("azure-ai-foundry", configured=False)
    openai = FakeProvider("azure-openai")
    outcome = await _selector(foundry, openai).diagnose(_request())

    assert foundry.calls == 0
    assert outcome.fallback_used is True
    assert outcome.attempts[0].outcome == "skipped"
    assert "SOME_KEY" in outcome.attempts[0].reason


@pytest.mark.asyncio
async def test_all_failures_raise_with_every_attempt() -> None:
    foundry = FakeProvider("azure-ai-foundry", error=ProviderError("first"))
    openai = FakeProvider("azure-openai", error=RuntimeError("second"))

    with pytest.raises(AllProvidersUnavailable) as exc_info:
        await _selector(foundry, openai).diagnose(_request())

    assert [a.provider for a in exc_info.value.attempts] == ["azure-ai-foundry", "azure-openai"]
    assert "first" in str(exc_info.value)
    assert "second" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fallback_disabled_tries_primary_only() -> None:
    foundry = FakeProvider("azure-ai-foundry", error=ProviderError("down"))
    openai = FakeProvider("azure-openai")

    with pytest.raises(AllProvidersUnavailable):
        await _selector(foundry, openai, fallback_enabled=False).diagnose(_request())
    assert openai.calls == 0


@pytest.mark.asyncio
async def test_slow_primary_times_out() -> None:
    foundry = FakeProvider("azure-ai-foundry", delay=0.5)
    openai = FakeProvider("azure-openai")
    outcome = await _selector(foundry, openai, timeout_seconds=0.05).diagnose(_request())

    assert outcome.provider == "azure-openai"
    assert "timed out" in outcome.attempts[0].reason


@pytest.mark.asyncio
async def test_failed_provider_is_retried_on_next_call() -> None:
    foundry = FakeProvider("azure-ai-foundry", error=ProviderError("flaky"))
    openai = FakeProvider("azure-openai")
    selector = _selector(foundry, openai)

    await selector.diagnose(_request())
    await selector.diagnose(_request())
    assert foundry.calls == 2


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_unknown_primary_rejected() -> None:
    with pytest.raises(UnknownProvider):
        ProviderSelector({"azure-openai": FakeProvider("azure-openai")}, primary="ollama")


def test_set_primary_changes_strategy_order() -> None:
    selector = _selector(FakeProvider("azure-ai-foundry"), FakeProvider("azure-openai"))
    selector.set_primary_provider("github-models")

    assert selector.strategies == ["github-models", "azure-openai"]
    assert selector.get_config()["primaryProvider"] == "github-models"


def test_primary_equal_to_fallback_has_one_strategy() -> None:
    selector = _selector(FakeProvider("azure-ai-foundry"), FakeProvider("azure-openai"))
    selector.set_primary_provider("azure-openai")
    assert selector.strategies == ["azure-openai"]


def test_config_reports_timeout_in_ms() -> None:
    selector = _selector(
        FakeProvider("azure-ai-foundry"), FakeProvider("azure-openai"), timeout_seconds=30.0
    )
    config = selector.get_config()
    assert config["timeout"] == 30000
    assert config["fallbackEnabled"] is True


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health_reports_every_provider() -> None:
    selector = _selector(
        FakeProvider("azure-ai-foundry", configured=False),
        FakeProvider("azure-openai"),
        FakeProvider("github-models", error=ProviderError("401 Unauthorized")),
    )
    statuses = {s.service: s for s in await selector.check_health()}

    assert statuses["azure-ai-foundry"].is_healthy is False
    assert "SOME_KEY" in statuses["azure-ai-foundry"].error
    assert statuses["azure-openai"].is_healthy is True
    assert statuses["azure-openai"].latency is not None
    assert statuses["github-models"].error == "401 Unauthorized"


@pytest.mark.asyncio
async def test_health_probe_is_bounded() -> None:
    selector = _selector(
        FakeProvider("azure-ai-foundry", delay=0.5),
        FakeProvider("azure-openai"),
        health_timeout_seconds=0.05,
    )
    statuses = {s.service: s for s in await selector.check_health()}
    assert statuses["azure-ai-foundry"].is_healthy is False
    assert "timed out" in statuses["azure-ai-foundry"].error
