"""Provider selection with a single fallback.

Strategies are tried in order (primary, then fallback). Each attempt is
bounded by the service timeout and recorded as a ``ProviderAttempt``.
There is no retry beyond the fallback and no memory of past failures:
a provider that failed on one call is tried again on the next.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

import structlog

from truck_assistant.ai.providers.base import AIProvider, ProviderNotConfigured
from truck_assistant.ai.schemas import (
    ChatMessage,
    DiagnosisRequest,
    DiagnosisResult,
    FallbackResult,
    HealthStatus,
    ProviderAttempt,
)
from truck_assistant.config import Settings

logger = structlog.get_logger()

T = TypeVar("T")


class UnknownProvider(ValueError):
    """A provider name that is not registered with the selector."""


class AllProvidersUnavailable(Exception):
    """Every strategy was skipped or failed."""

    def __init__(self, attempts: List[ProviderAttempt]) -> None:
        self.attempts = attempts
        details = "; ".join(f"{a.provider}: {a.reason}" for a in attempts)
        super().__init__(f"All AI providers failed. Errors: {details}")


class ProviderSelector:
    """Ordered primary/fallback strategy over registered providers."""

    def __init__(
        self,
        providers: Mapping[str, AIProvider],
        primary: str,
        fallback: Optional[str] = None,
        fallback_enabled: bool = True,
        timeout_seconds: float = 30.0,
        health_timeout_seconds: float = 5.0,
    ) -> None:
        self._providers: Dict[str, AIProvider] = dict(providers)
        self._check_name(primary)
        if fallback is not None:
            self._check_name(fallback)
        self.primary = primary
        self.fallback = fallback
        self.fallback_enabled = fallback_enabled
        self.timeout_seconds = timeout_seconds
        self.health_timeout_seconds = health_timeout_seconds

    @classmethod
    def from_settings(
        cls, settings: Settings, providers: Mapping[str, AIProvider]
    ) -> "ProviderSelector":
        return cls(
            providers,
            primary=settings.ai_primary_provider,
            fallback=settings.ai_fallback_provider or None,
            fallback_enabled=settings.ai_fallback_enabled,
            timeout_seconds=settings.ai_service_timeout_ms / 1000,
            health_timeout_seconds=settings.ai_health_timeout_ms / 1000,
        )

    def _check_name(self, name: str) -> None:
        if name not in self._providers:
            raise UnknownProvider(
                f"Unknown provider '{name}'. Expected one of: {', '.join(self._providers)}"
            )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def strategies(self) -> List[str]:
        """Provider names in the order they are tried."""
        order = [self.primary]
        if self.fallback_enabled and self.fallback and self.fallback != self.primary:
            order.append(self.fallback)
        return order

    def get_provider(self, name: str) -> AIProvider:
        self._check_name(name)
        return self._providers[name]

    def set_primary_provider(self, name: str) -> None:
        self._check_name(name)
        logger.info("primary_provider_changed", old=self.primary, new=name)
        self.primary = name

    def set_fallback_enabled(self, enabled: bool) -> None:
        self.fallback_enabled = enabled

    def configured_providers(self) -> Dict[str, bool]:
        return {name: p.is_configured() for name, p in self._providers.items()}

    def get_config(self) -> dict:
        return {
            "primaryProvider": self.primary,
            "fallbackProvider": self.fallback,
            "fallbackEnabled": self.fallback_enabled,
            "timeout": int(self.timeout_seconds * 1000),
            "strategies": self.strategies,
        }

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def _run(
        self, operation: str, call: Callable[[AIProvider], Awaitable[T]]
    ) -> FallbackResult[T]:
        attempts: List[ProviderAttempt] = []
        for index, name in enumerate(self.strategies):
            provider = self._providers[name]
            if not provider.is_configured():
                reason = str(ProviderNotConfigured(name, provider.missing_configuration()))
                attempts.append(ProviderAttempt(provider=name, outcome="skipped", reason=reason))
                logger.info("provider_skipped", operation=operation, provider=name, reason=reason)
                continue

            try:
                result = await asyncio.wait_for(call(provider), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                reason = f"Operation timed out after {int(self.timeout_seconds * 1000)}ms"
                attempts.append(ProviderAttempt(provider=name, outcome="failure", reason=reason))
                logger.warning("provider_attempt_failed", operation=operation, provider=name, error=reason)
                continue
            except Exception as exc:
                reason = str(exc) or type(exc).__name__
                attempts.append(ProviderAttempt(provider=name, outcome="failure", reason=reason))
                logger.warning("provider_attempt_failed", operation=operation, provider=name, error=reason)
                continue

            attempts.append(ProviderAttempt(provider=name, outcome="success"))
            logger.info(
                "provider_attempt_succeeded",
                operation=operation,
                provider=name,
                fallback_used=index > 0,
            )
            return FallbackResult(
                result=result,
                provider=name,
                fallback_used=index > 0,
                attempts=attempts,
            )

        logger.error("all_providers_failed", operation=operation, attempts=len(attempts))
        raise AllProvidersUnavailable(attempts)

    async def diagnose(self, request: DiagnosisRequest) -> FallbackResult[DiagnosisResult]:
        return await self._run("diagnose", lambda p: p.diagnose(request))

    async def chat(self, messages: List[ChatMessage]) -> FallbackResult[str]:
        return await self._run("chat", lambda p: p.chat(messages))

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def _bounded_health(self, provider: AIProvider) -> HealthStatus:
        try:
            return await asyncio.wait_for(
                provider.health_check(), timeout=self.health_timeout_seconds
            )
        except asyncio.TimeoutError:
            return HealthStatus(
                service=provider.name,
                is_healthy=False,
                latency=self.health_timeout_seconds * 1000,
                error=f"Health check timed out after {int(self.health_timeout_seconds * 1000)}ms",
            )
        except Exception as exc:
            return HealthStatus(
                service=provider.name,
                is_healthy=False,
                error=str(exc) or type(exc).__name__,
            )

    async def check_health(self) -> List[HealthStatus]:
        """One status per registered provider, probed concurrently."""
        return list(
            await asyncio.gather(
                *(self._bounded_health(p) for p in self._providers.values())
            )
        )

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()
