"""Request bodies of the HTTP API that are not domain records."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from truck_assistant.ai.schemas import CamelModel, ChatMessage, ProviderName


class ChatRequest(CamelModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class FoundryRequest(CamelModel):
    message: str = Field(..., min_length=1)


class AIConfigUpdate(CamelModel):
    """Runtime change of provider selection; omitted fields are kept."""

    primary_provider: Optional[ProviderName] = None
    fallback_enabled: Optional[bool] = None


class SearchCriteria(CamelModel):
    make: Optional[str] = None
    model: Optional[str] = None


class DataSearchRequest(CamelModel):
    search_criteria: Optional[SearchCriteria] = None


class DatabaseActionRequest(CamelModel):
    action: Literal["test-truck-operations", "test-query"]
    data: Dict[str, Any] = Field(default_factory=dict)
