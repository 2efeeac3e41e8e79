"""Pydantic schemas for AI diagnosis and chat.

All models serialise to camelCase JSON (``repairSteps``,
``fallbackUsed``) while keeping snake_case attributes in Python.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

ProviderName = Literal["azure-openai", "azure-ai-foundry", "github-models"]
Urgency = Literal["low", "medium", "high"]
AttemptOutcome = Literal["success", "failure", "skipped"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TruckInfo(CamelModel):
    """The truck a diagnosis is requested for."""

    id: Optional[str] = None
    make: str = Field(..., min_length=1, description="Truck make (e.g. Peterbilt)")
    model: str = Field(..., min_length=1, description="Truck model (e.g. 379)")
    year: Optional[int] = Field(None, ge=1900, le=2100)
    years: Optional[List[int]] = None
    engine: Optional[str] = Field(None, description="Engine (e.g. Cummins ISX15)")
    mileage: Optional[int] = Field(None, ge=0)

    def describe(self) -> str:
        parts = [str(self.year) if self.year else "", self.make, self.model]
        return " ".join(p for p in parts if p)


class DiagnosisRequest(CamelModel):
    """A user's symptom report for one truck."""

    truck: TruckInfo = Field(
        ..., validation_alias=AliasChoices("truck", "truckInfo")
    )
    symptoms: List[str] = Field(..., min_length=1)
    additional_info: Optional[str] = None
    urgency: Urgency = "medium"

    @field_validator("symptoms", mode="before")
    @classmethod
    def _split_symptoms(cls, value: Any) -> Any:
        """Accept one free-text block or a list; drop blank entries."""
        if isinstance(value, str):
            return [line.strip() for line in value.splitlines() if line.strip()]
        if isinstance(value, list):
            cleaned = [s.strip() if isinstance(s, str) else s for s in value]
            return [s for s in cleaned if s != ""]
        return value

    @field_validator("urgency", mode="before")
    @classmethod
    def _lower_urgency(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class DiagnosisResult(CamelModel):
    """Structured diagnosis produced by a provider. Immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    diagnosis: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=100.0, description="Confidence 0-100")
    repair_steps: List[str] = Field(default_factory=list)
    required_tools: List[str] = Field(default_factory=list)
    estimated_time: str = "Not specified"
    estimated_cost: str = "Estimate not available"
    safety_warnings: List[str] = Field(default_factory=list)
    urgency_level: Urgency = "medium"

    @model_validator(mode="before")
    @classmethod
    def _map_legacy_keys(cls, data: Any) -> Any:
        """Older prompts answered with possibleCauses/recommendations."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        causes = data.pop("possibleCauses", None)
        if "diagnosis" not in data and causes:
            if isinstance(causes, list):
                data["diagnosis"] = "; ".join(str(c) for c in causes)
            else:
                data["diagnosis"] = str(causes)
        recommendations = data.pop("recommendations", None)
        if "repairSteps" not in data and "repair_steps" not in data and recommendations:
            data["repairSteps"] = recommendations
        return data

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalise_confidence(cls, value: Any) -> Any:
        """Fractions (0-1) are scaled to percent; overshoot is capped at 100."""
        if isinstance(value, str):
            value = value.strip().rstrip("%")
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        if 0.0 <= number <= 1.0:
            number *= 100.0
        return min(number, 100.0)

    @field_validator(
        "repair_steps", "required_tools", "safety_warnings", mode="before"
    )
    @classmethod
    def _wrap_single_item(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _coerce_urgency(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "critical":
                return "high"
        return value


class ChatMessage(CamelModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(..., min_length=1)


class HealthStatus(CamelModel):
    """Health of one provider, recomputed on every check."""

    service: ProviderName
    is_healthy: bool
    latency: Optional[float] = Field(None, description="Round trip in ms")
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ProviderAttempt(CamelModel):
    """Outcome of trying one provider strategy."""

    provider: ProviderName
    outcome: AttemptOutcome
    reason: Optional[str] = None


T = TypeVar("T")


@dataclass(frozen=True)
class FallbackResult(Generic[T]):
    """What the provider selector hands back to a route handler.

    ``fallback_used`` is true iff the primary provider did not produce
    ``result``.
    """

    result: T
    provider: str
    fallback_used: bool
    attempts: List[ProviderAttempt] = field(default_factory=list)
