"""Common contract for AI provider clients."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import List, Sequence

import structlog

from truck_assistant.ai.schemas import (
    ChatMessage,
    DiagnosisRequest,
    DiagnosisResult,
    HealthStatus,
)

logger = structlog.get_logger()


class ProviderError(Exception):
    """A provider call failed (transport, API or empty answer)."""


class ProviderNotConfigured(ProviderError):
    """Required environment variables for a provider are absent."""

    def __init__(self, provider: str, missing: Sequence[str]) -> None:
        self.provider = provider
        self.missing = list(missing)
        super().__init__(
            f"{provider} is not configured (missing: {', '.join(self.missing)})"
        )


class AIProvider(ABC):
    """One AI backend able to diagnose, chat and report its health."""

    name: str = ""

    @abstractmethod
    def missing_configuration(self) -> List[str]:
        """Names of the environment variables this provider still needs."""

    def is_configured(self) -> bool:
        return not self.missing_configuration()

    def ensure_configured(self) -> None:
        missing = self.missing_configuration()
        if missing:
            raise ProviderNotConfigured(self.name, missing)

    @abstractmethod
    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisResult:
        ...

    @abstractmethod
    async def chat(self, messages: List[ChatMessage]) -> str:
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Make the cheapest possible round trip; raise on failure."""

    async def health_check(self) -> HealthStatus:
        """Probe the provider. Never raises."""
        missing = self.missing_configuration()
        if missing:
            return HealthStatus(
                service=self.name,
                is_healthy=False,
                error=f"Missing configuration: {', '.join(missing)}",
            )

        started = time.perf_counter()
        try:
            await self.ping()
        except Exception as exc:
            logger.warning("provider_health_failed", provider=self.name, error=str(exc))
            return HealthStatus(
                service=self.name,
                is_healthy=False,
                latency=round((time.perf_counter() - started) * 1000, 1),
                error=str(exc) or type(exc).__name__,
            )
        return HealthStatus(
            service=self.name,
            is_healthy=True,
            latency=round((time.perf_counter() - started) * 1000, 1),
        )

    async def close(self) -> None:
        """Release network resources held by the client."""


def require_text(content: str | None, provider: str) -> str:
    if not content or not content.strip():
        raise ProviderError(f"{provider} returned an empty response")
    return content
