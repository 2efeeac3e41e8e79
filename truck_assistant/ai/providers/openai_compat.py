"""Shared chat-completions flow for OpenAI-compatible providers."""

from __future__ import annotations

from abc import abstractmethod
from typing import List, Optional

import structlog
from openai import AsyncOpenAI

from truck_assistant.ai import prompts, validate
from truck_assistant.ai.providers.base import AIProvider, require_text
from truck_assistant.ai.schemas import ChatMessage, DiagnosisRequest, DiagnosisResult

logger = structlog.get_logger()


class OpenAICompatibleProvider(AIProvider):
    """Provider speaking the chat-completions API through the ``openai`` SDK.

    Subclasses only decide how the client is built and which model or
    deployment name is sent.
    """

    diagnosis_temperature: float = 0.3
    diagnosis_max_tokens: int = 4000
    chat_temperature: float = 0.1
    chat_max_tokens: int = 2000

    def __init__(self, model: str, timeout_seconds: float = 30.0) -> None:
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client: Optional[AsyncOpenAI] = None

    @abstractmethod
    def _build_client(self) -> AsyncOpenAI:
        ...

    def _get_client(self) -> AsyncOpenAI:
        self.ensure_configured()
        if self._client is None:
            self._client = self._build_client()
            logger.info("initialized_ai_client", provider=self.name, model=self.model)
        return self._client

    async def _complete(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        json_mode: bool = False,
    ) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisResult:
        messages = [
            {"role": "system", "content": prompts.DIAGNOSIS_SYSTEM_PROMPT},
            {"role": "user", "content": prompts.build_diagnosis_prompt(request)},
        ]
        logger.info("diagnosis_request_sent", provider=self.name, truck=request.truck.describe())
        content = await self._complete(
            messages,
            temperature=self.diagnosis_temperature,
            max_tokens=self.diagnosis_max_tokens,
            json_mode=True,
        )
        require_text(content, self.name)
        logger.info("diagnosis_response_received", provider=self.name, length=len(content))
        return validate.to_diagnosis(content, request)

    async def chat(self, messages: List[ChatMessage]) -> str:
        payload = [{"role": "system", "content": prompts.CHAT_SYSTEM_PROMPT}]
        payload.extend({"role": m.role, "content": m.content} for m in messages)
        content = await self._complete(
            payload,
            temperature=self.chat_temperature,
            max_tokens=self.chat_max_tokens,
        )
        return require_text(content, self.name)

    async def ping(self) -> None:
        await self._complete(
            [{"role": "user", "content": "Health check"}],
            temperature=0,
            max_tokens=10,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
