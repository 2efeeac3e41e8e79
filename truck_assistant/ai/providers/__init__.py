"""AI provider clients, keyed by their public provider name."""

from typing import Dict

from truck_assistant.ai.providers.azure_foundry import AgentMessage, AzureFoundryAgentProvider
from truck_assistant.ai.providers.azure_openai import AzureOpenAIProvider
from truck_assistant.ai.providers.base import AIProvider, ProviderError, ProviderNotConfigured
from truck_assistant.ai.providers.github_models import GitHubModelsProvider
from truck_assistant.config import Settings


def build_providers(settings: Settings) -> Dict[str, AIProvider]:
    """Construct one client per supported provider from *settings*."""
    providers = [
        AzureFoundryAgentProvider.from_settings(settings),
        AzureOpenAIProvider.from_settings(settings),
        GitHubModelsProvider.from_settings(settings),
    ]
    return {p.name: p for p in providers}


__all__ = [
    "AIProvider",
    "AgentMessage",
    "AzureFoundryAgentProvider",
    "AzureOpenAIProvider",
    "GitHubModelsProvider",
    "ProviderError",
    "ProviderNotConfigured",
    "build_providers",
]
