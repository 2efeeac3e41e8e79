"""Tests for the OpenAI-compatible providers and the Foundry agent provider.

SDK clients are replaced with mocks -- no Azure or GitHub calls are made.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from truck_assistant.ai.providers import build_providers
from truck_assistant.ai.providers.azure_foundry import AzureFoundryAgentProvider
from truck_assistant.ai.providers.azure_openai import AzureOpenAIProvider
from truck_assistant.ai.providers.base import ProviderError, ProviderNotConfigured
from truck_assistant.ai.providers.github_models import GitHubModelsProvider
from truck_assistant.ai.schemas import ChatMessage, DiagnosisRequest
from truck_assistant.config import Settings


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _inject_mock_client(provider, content):
    """Set a mock SDK client on the provider to bypass _build_client."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion(content))
    client.close = AsyncMock()
    provider._client = client
    return client


def _request() -> DiagnosisRequest:
    return DiagnosisRequest.model_validate(
        {
            "truck": {"make": "Freightliner", "model": "Cascadia", "year": 2020, "engine": "DD15"},
            "symptoms": ["Check engine light", "Loss of power"],
            "additionalInfo": "Happens on grades",
        }
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfiguration:

    def test_azure_openai_reports_missing_variables(self):
        provider = AzureOpenAIProvider(endpoint=None, api_key=None, api_version="2024-10-21", deployment="gpt-4o")
        assert provider.missing_configuration() == ["AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_KEY"]
        assert provider.is_configured() is False

    def test_github_models_needs_token(self):
        assert GitHubModelsProvider(token=None).missing_configuration() == ["NEXT_PUBLIC_GITHUB_TOKEN"]
        assert GitHubModelsProvider(token="ghp_x").is_configured() is True

    def test_foundry_reports_missing_variables(self):
        provider = AzureFoundryAgentProvider(endpoint="https://proj", agent_id=None, thread_id=None)
        assert provider.missing_configuration() == ["AZURE_AGENT_ID", "AZURE_THREAD_ID"]

    def test_build_providers_registers_all_three(self):
        providers = build_providers(Settings(_env_file=None))
        assert set(providers) == {"azure-ai-foundry", "azure-openai", "github-models"}

    @pytest.mark.asyncio
    async def test_unconfigured_call_raises_before_network(self):
        provider = GitHubModelsProvider(token=None)
        with pytest.raises(ProviderNotConfigured):
            await provider.chat([ChatMessage(role="user", content="hi")])

    @pytest.mark.asyncio
    async def test_health_of_unconfigured_provider(self):
        status = await GitHubModelsProvider(token=None).health_check()
        assert status.is_healthy is False
        assert "NEXT_PUBLIC_GITHUB_TOKEN" in status.error


# ---------------------------------------------------------------------------
# Chat-completions flow
# ---------------------------------------------------------------------------

class TestOpenAICompatible:

    @pytest.fixture
    def provider(self):
        return AzureOpenAIProvider(
            endpoint="https://example.openai.azure.com",
            api_key="secret",
            api_version="2024-10-21",
            deployment="truck-gpt",
        )

    @pytest.mark.asyncio
    async def test_diagnose_parses_json_answer(self, provider):
        client = _inject_mock_client(
            provider,
            '{"diagnosis": "Clogged DPF", "confidence": 0.9, "repairSteps": ["Force regen"]}',
        )
        result = await provider.diagnose(_request())

        assert result.diagnosis == "Clogged DPF"
        assert result.confidence == 90
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "truck-gpt"
        assert kwargs["response_format"] == {"type": "json_object"}
        user_prompt = kwargs["messages"][1]["content"]
        assert "Freightliner" in user_prompt
        assert "- Loss of power" in user_prompt
        assert "Happens on grades" in user_prompt

    @pytest.mark.asyncio
    async def test_diagnose_plain_text_answer_wrapped(self, provider):
        _inject_mock_client(provider, "Probably the turbo actuator.")
        result = await provider.diagnose(_request())
        assert result.diagnosis == "Probably the turbo actuator."
        assert result.confidence == 60

    @pytest.mark.asyncio
    async def test_empty_answer_is_an_error(self, provider):
        _inject_mock_client(provider, "")
        with pytest.raises(ProviderError):
            await provider.diagnose(_request())

    @pytest.mark.asyncio
    async def test_chat_prepends_system_prompt(self, provider):
        client = _inject_mock_client(provider, "Check the fuel filter.")
        reply = await provider.chat(
            [
                ChatMessage(role="user", content="Engine stalls"),
                ChatMessage(role="assistant", content="When?"),
                ChatMessage(role="user", content="At idle"),
            ]
        )
        assert reply == "Check the fuel filter."
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert [m["role"] for m in messages[1:]] == ["user", "assistant", "user"]
        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_health_check_success(self, provider):
        _inject_mock_client(provider, "pong")
        status = await provider.health_check()
        assert status.is_healthy is True
        assert status.service == "azure-openai"

    @pytest.mark.asyncio
    async def test_health_check_failure_never_raises(self, provider):
        client = _inject_mock_client(provider, "pong")
        client.chat.completions.create.side_effect = RuntimeError("401 Unauthorized")
        status = await provider.health_check()
        assert status.is_healthy is False
        assert status.error == "401 Unauthorized"

    @pytest.mark.asyncio
    async def test_close_releases_client(self, provider):
        client = _inject_mock_client(provider, "x")
        await provider.close()
        client.close.assert_awaited_once()
        assert provider._client is None


# ---------------------------------------------------------------------------
# Foundry agent provider
# ---------------------------------------------------------------------------

class TestFoundryAgent:

    @pytest.fixture
    def provider(self):
        return AzureFoundryAgentProvider(
            endpoint="https://proj.services.ai.azure.com",
            agent_id="asst_1",
            thread_id="thread_1",
        )

    @pytest.mark.asyncio
    async def test_diagnose_uses_last_thread_message(self, provider):
        from truck_assistant.ai.providers.azure_foundry import AgentMessage

        thread = [
            AgentMessage(role="user", text="prompt"),
            AgentMessage(role="assistant", text='{"diagnosis": "Bad injector", "confidence": 75}'),
        ]
        with patch.object(provider, "converse", AsyncMock(return_value=thread)) as converse:
            result = await provider.diagnose(_request())

        assert result.diagnosis == "Bad injector"
        sent = converse.call_args.args[0]
        assert "Respond ONLY with JSON" in sent

    @pytest.mark.asyncio
    async def test_chat_sends_latest_user_turn(self, provider):
        from truck_assistant.ai.providers.azure_foundry import AgentMessage

        thread = [AgentMessage(role="assistant", text="Replace the sensor.")]
        with patch.object(provider, "converse", AsyncMock(return_value=thread)) as converse:
            reply = await provider.chat(
                [
                    ChatMessage(role="user", content="first"),
                    ChatMessage(role="assistant", content="answer"),
                    ChatMessage(role="user", content="second"),
                ]
            )
        assert reply == "Replace the sensor."
        converse.assert_awaited_once_with("second")

    @pytest.mark.asyncio
    async def test_empty_thread_is_an_error(self, provider):
        with patch.object(provider, "converse", AsyncMock(return_value=[])):
            with pytest.raises(ProviderError):
                await provider.chat([ChatMessage(role="user", content="hi")])

    @pytest.mark.asyncio
    async def test_chat_without_user_turn_is_an_error(self, provider):
        with pytest.raises(ProviderError):
            await provider.chat([ChatMessage(role="assistant", content="hello")])

    @pytest.mark.asyncio
    async def test_converse_unconfigured_raises(self):
        provider = AzureFoundryAgentProvider(endpoint=None, agent_id=None, thread_id=None)
        with pytest.raises(ProviderNotConfigured):
            await provider.converse("hello")


class _AsyncPage:
    """Async iterable standing in for the SDK's paged message listing."""

    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


def _run(status, run_id="run_1", last_error=None):
    return SimpleNamespace(id=run_id, status=status, last_error=last_error)


def _thread_message(role, text=None):
    parts = [] if text is None else [SimpleNamespace(text=SimpleNamespace(value=text))]
    return SimpleNamespace(role=role, text_messages=parts)


class TestFoundryAgentRun:
    """Drives ``converse`` through fakes specced on the SDK operation classes."""

    @pytest.fixture
    def provider(self):
        return AzureFoundryAgentProvider(
            endpoint="https://proj.services.ai.azure.com",
            agent_id="asst_1",
            thread_id="thread_1",
            poll_interval_seconds=0,
        )

    @pytest.fixture
    def agents(self, provider):
        from azure.ai.agents.aio import AgentsClient
        from azure.ai.agents.aio.operations import MessagesOperations, RunsOperations

        client = MagicMock(spec=AgentsClient)
        client.messages = MagicMock(spec_set=MessagesOperations)
        client.runs = MagicMock(spec_set=RunsOperations)
        client.__aenter__.return_value = client
        client.messages.list.return_value = _AsyncPage([])

        with patch(
            "truck_assistant.ai.providers.azure_foundry.AgentsClient", return_value=client
        ) as factory, patch.object(provider, "_credential", return_value=MagicMock()):
            yield client
        factory.assert_called_once()

    @pytest.mark.asyncio
    async def test_completed_run_returns_thread_in_ascending_order(self, provider, agents):
        from azure.ai.agents.models import ListSortOrder, MessageRole

        agents.runs.create.return_value = _run("queued")
        agents.runs.get.side_effect = [_run("in_progress"), _run("completed")]
        agents.messages.list.return_value = _AsyncPage(
            [
                _thread_message(MessageRole.USER, "Engine overheating"),
                _thread_message(MessageRole.AGENT),
                _thread_message(MessageRole.AGENT, "Check the thermostat."),
            ]
        )

        conversation = await provider.converse("Engine overheating")

        assert [(m.role, m.text) for m in conversation] == [
            ("user", "Engine overheating"),
            ("assistant", "Check the thermostat."),
        ]
        agents.messages.create.assert_awaited_once_with(
            thread_id="thread_1", role="user", content="Engine overheating"
        )
        agents.runs.create.assert_awaited_once_with(thread_id="thread_1", agent_id="asst_1")
        assert agents.runs.get.await_count == 2
        agents.messages.list.assert_called_once_with(
            thread_id="thread_1", order=ListSortOrder.ASCENDING
        )

    @pytest.mark.asyncio
    async def test_failed_run_raises(self, provider, agents):
        agents.runs.create.return_value = _run("in_progress")
        agents.runs.get.return_value = _run("failed", last_error="rate_limit_exceeded")

        with pytest.raises(ProviderError, match="status failed: rate_limit_exceeded"):
            await provider.converse("hello")
        agents.messages.list.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_action_stops_polling(self, provider, agents):
        agents.runs.create.return_value = _run("in_progress")
        agents.runs.get.return_value = _run("requires_action")

        with pytest.raises(ProviderError, match="requires_action"):
            await provider.converse("hello")
        assert agents.runs.get.await_count == 1

    @pytest.mark.asyncio
    async def test_ping_fetches_agent(self, provider, agents):
        await provider.ping()
        agents.get_agent.assert_awaited_once_with("asst_1")
