"""Azure AI Foundry agent provider.

Every call posts a user message to a pre-created agent thread, starts a
run, polls it to completion and reads the thread back in chronological
order. The agent keeps its own instructions and conversation memory in
the thread, so only the newest user turn is sent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional

import structlog
from azure.ai.agents.aio import AgentsClient
from azure.ai.agents.models import ListSortOrder
from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential

from truck_assistant.ai import prompts, validate
from truck_assistant.ai.providers.base import AIProvider, ProviderError, require_text
from truck_assistant.ai.schemas import ChatMessage, DiagnosisRequest, DiagnosisResult
from truck_assistant.config import Settings

logger = structlog.get_logger()

# Any other status (completed, failed, cancelled, expired, requires_action)
# ends polling; tool calls are not answered, so requires_action never resolves.
_PENDING_RUN_STATES = {"queued", "in_progress"}


def _enum_text(value) -> str:
    return str(getattr(value, "value", value)).lower()


@dataclass(frozen=True)
class AgentMessage:
    role: str
    text: str


class AzureFoundryAgentProvider(AIProvider):
    """Runs prompts through an Azure AI Foundry agent thread."""

    name = "azure-ai-foundry"

    def __init__(
        self,
        endpoint: Optional[str],
        agent_id: Optional[str],
        thread_id: Optional[str],
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self.endpoint = endpoint
        self.agent_id = agent_id
        self.thread_id = thread_id
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self.poll_interval_seconds = poll_interval_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "AzureFoundryAgentProvider":
        return cls(
            endpoint=settings.azure_projects_endpoint,
            agent_id=settings.azure_agent_id,
            thread_id=settings.azure_thread_id,
            tenant_id=settings.azure_tenant_id,
            client_id=settings.azure_client_id,
            client_secret=settings.azure_client_secret,
            poll_interval_seconds=settings.foundry_poll_interval_seconds,
        )

    def missing_configuration(self) -> List[str]:
        missing = []
        if not self.endpoint:
            missing.append("AZURE_PROJECTS_ENDPOINT")
        if not self.agent_id:
            missing.append("AZURE_AGENT_ID")
        if not self.thread_id:
            missing.append("AZURE_THREAD_ID")
        return missing

    def _credential(self):
        if self._tenant_id and self._client_id and self._client_secret:
            return ClientSecretCredential(
                tenant_id=self._tenant_id,
                client_id=self._client_id,
                client_secret=self._client_secret,
            )
        return DefaultAzureCredential()

    # -- agent conversation -------------------------------------------------

    async def converse(self, message: str) -> List[AgentMessage]:
        """Send *message* to the agent thread and return the whole thread.

        Raises:
            ProviderNotConfigured: if endpoint, agent or thread is unset.
            ProviderError: if the run ends in a non-completed state.
        """
        self.ensure_configured()
        logger.info("agent_conversation_start", thread_id=self.thread_id)

        credential = self._credential()
        async with credential, AgentsClient(
            endpoint=self.endpoint, credential=credential
        ) as agents:
            await agents.messages.create(
                thread_id=self.thread_id, role="user", content=message
            )
            run = await agents.runs.create(
                thread_id=self.thread_id, agent_id=self.agent_id
            )
            while _enum_text(run.status) in _PENDING_RUN_STATES:
                await asyncio.sleep(self.poll_interval_seconds)
                run = await agents.runs.get(thread_id=self.thread_id, run_id=run.id)

            status = _enum_text(run.status)
            if status != "completed":
                logger.warning("agent_run_not_completed", run_id=run.id, status=status)
                raise ProviderError(
                    f"Agent run {run.id} ended with status {status}: {run.last_error}"
                )

            conversation: List[AgentMessage] = []
            async for msg in agents.messages.list(
                thread_id=self.thread_id, order=ListSortOrder.ASCENDING
            ):
                if msg.text_messages:
                    conversation.append(
                        AgentMessage(
                            role=_enum_text(msg.role),
                            text=msg.text_messages[-1].text.value,
                        )
                    )

        logger.info("agent_conversation_completed", messages=len(conversation))
        return conversation

    async def _reply(self, message: str) -> str:
        conversation = await self.converse(message)
        if not conversation:
            raise ProviderError("Agent thread returned no messages")
        return require_text(conversation[-1].text, self.name)

    # -- provider contract --------------------------------------------------

    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisResult:
        reply = await self._reply(prompts.build_agent_diagnosis_message(request))
        return validate.to_diagnosis(reply, request)

    async def chat(self, messages: List[ChatMessage]) -> str:
        user_turns = [m for m in messages if m.role == "user"]
        if not user_turns:
            raise ProviderError("Chat requires at least one user message")
        return await self._reply(user_turns[-1].content)

    async def ping(self) -> None:
        self.ensure_configured()
        credential = self._credential()
        async with credential, AgentsClient(
            endpoint=self.endpoint, credential=credential
        ) as agents:
            await agents.get_agent(self.agent_id)
