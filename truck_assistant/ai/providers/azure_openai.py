"""Azure OpenAI chat-completions provider."""

from __future__ import annotations

from typing import List, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from truck_assistant.ai.providers.openai_compat import OpenAICompatibleProvider
from truck_assistant.config import Settings


class AzureOpenAIProvider(OpenAICompatibleProvider):
    """Talks to an Azure OpenAI deployment (``AZURE_OPENAI_*``)."""

    name = "azure-openai"

    def __init__(
        self,
        endpoint: Optional[str],
        api_key: Optional[str],
        api_version: str,
        deployment: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        super().__init__(model=deployment, timeout_seconds=timeout_seconds)
        self.endpoint = endpoint
        self.api_key = api_key
        self.api_version = api_version

    @classmethod
    def from_settings(cls, settings: Settings) -> "AzureOpenAIProvider":
        return cls(
            endpoint=settings.azure_openai_endpoint,
            api_key=settings.azure_openai_key,
            api_version=settings.azure_openai_api_version,
            deployment=settings.azure_openai_deployment,
            timeout_seconds=settings.ai_service_timeout_ms / 1000,
        )

    def missing_configuration(self) -> List[str]:
        missing = []
        if not self.endpoint:
            missing.append("AZURE_OPENAI_ENDPOINT")
        if not self.api_key:
            missing.append("AZURE_OPENAI_KEY")
        return missing

    def _build_client(self) -> AsyncOpenAI:
        return AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=self.api_key,
            api_version=self.api_version,
            timeout=self.timeout_seconds,
            max_retries=0,
        )
