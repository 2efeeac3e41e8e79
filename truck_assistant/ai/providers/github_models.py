"""GitHub Models provider (OpenAI-compatible inference endpoint)."""

from __future__ import annotations

from typing import List, Optional

from openai import AsyncOpenAI

from truck_assistant.ai.providers.openai_compat import OpenAICompatibleProvider
from truck_assistant.config import Settings


class GitHubModelsProvider(OpenAICompatibleProvider):
    """Uses a GitHub token as bearer credential against GitHub Models."""

    name = "github-models"
    diagnosis_temperature = 0.1
    diagnosis_max_tokens = 2000

    def __init__(
        self,
        token: Optional[str],
        endpoint: str = "https://models.inference.ai.azure.com",
        model: str = "gpt-4o",
        timeout_seconds: float = 30.0,
    ) -> None:
        super().__init__(model=model, timeout_seconds=timeout_seconds)
        self.token = token
        self.endpoint = endpoint

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubModelsProvider":
        return cls(
            token=settings.github_token,
            endpoint=settings.github_models_endpoint,
            model=settings.github_models_model,
            timeout_seconds=settings.ai_service_timeout_ms / 1000,
        )

    def missing_configuration(self) -> List[str]:
        return [] if self.token else ["NEXT_PUBLIC_GITHUB_TOKEN"]

    def _build_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.token,
            base_url=self.endpoint,
            timeout=self.timeout_seconds,
            max_retries=0,
        )
