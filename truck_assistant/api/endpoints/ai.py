"""AI endpoints: diagnosis, chat, provider health, direct agent access.

POST /api/ai/diagnose   -- diagnosis through the provider selector
POST /api/ai/chat       -- chat through the provider selector
GET  /api/ai/health     -- health of every provider
POST /api/ai/foundry    -- raw Azure AI Foundry agent conversation
GET|POST /api/ai/config -- read or change provider selection at runtime
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from truck_assistant.ai.providers.azure_foundry import AzureFoundryAgentProvider
from truck_assistant.ai.selector import AllProvidersUnavailable, ProviderSelector
from truck_assistant.ai.schemas import DiagnosisRequest
from truck_assistant.api.deps import get_selector, get_store
from truck_assistant.api.schemas import AIConfigUpdate, ChatRequest, FoundryRequest
from truck_assistant.storage.base import RecordStore, StoreError
from truck_assistant.storage.schemas import DiagnosticSessionCreate

logger = structlog.get_logger()

router = APIRouter()

FOUNDRY = "azure-ai-foundry"


def _attempts(result) -> list:
    return [a.model_dump(by_alias=True) for a in result.attempts]


def _save_session(store: RecordStore, request: DiagnosisRequest, payload: dict) -> str:
    """Persist a diagnosis; the truck link is kept only for stored trucks."""
    truck_id = request.truck.id
    if truck_id is not None and store.get_truck(truck_id) is None:
        truck_id = None
    session = store.create_diagnostic_session(
        DiagnosticSessionCreate(
            truck_id=truck_id,
            symptoms="\n".join(request.symptoms),
            ai_response=payload,
        )
    )
    return session.id


# ---------------------------------------------------------------------------
# Diagnosis
# ---------------------------------------------------------------------------

@router.post("/diagnose", status_code=status.HTTP_200_OK)
async def diagnose(
    request: DiagnosisRequest,
    save: bool = Query(False, description="Persist the result as a diagnostic session"),
    selector: ProviderSelector = Depends(get_selector),
    store: RecordStore = Depends(get_store),
) -> dict:
    """Diagnose truck symptoms with the primary provider, falling back once."""
    logger.info(
        "diagnosis_requested",
        make=request.truck.make,
        model=request.truck.model,
        symptom_count=len(request.symptoms),
        urgency=request.urgency,
    )
    try:
        outcome = await selector.diagnose(request)
    except AllProvidersUnavailable as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    body = {
        "success": True,
        "result": outcome.result.model_dump(by_alias=True),
        "provider": outcome.provider,
        "fallbackUsed": outcome.fallback_used,
        "attempts": _attempts(outcome),
    }
    if save:
        try:
            body["sessionId"] = await asyncio.to_thread(
                _save_session, store, request, body["result"]
            )
        except StoreError as exc:
            # The diagnosis itself succeeded; report the failed save alongside it.
            logger.error("diagnosis_save_error", error=str(exc))
            body["sessionId"] = None
            body["saveError"] = str(exc)
    return body


@router.get("/diagnose")
async def diagnose_info() -> dict:
    return {
        "service": "AI Diagnosis API",
        "status": "available",
        "endpoints": {"POST": "/api/ai/diagnose - Diagnose truck issues"},
    }


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@router.post("/chat")
async def chat(
    request: ChatRequest,
    selector: ProviderSelector = Depends(get_selector),
) -> dict:
    try:
        outcome = await selector.chat(request.messages)
    except AllProvidersUnavailable as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {
        "success": True,
        "response": outcome.result,
        "provider": outcome.provider,
        "fallbackUsed": outcome.fallback_used,
        "attempts": _attempts(outcome),
    }


@router.get("/chat")
async def chat_info() -> dict:
    return {
        "service": "AI Chat API",
        "status": "available",
        "endpoints": {"POST": "/api/ai/chat - Chat with AI assistant"},
    }


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@router.get("/health")
async def ai_health(selector: ProviderSelector = Depends(get_selector)) -> dict:
    """Probe every provider; each probe is bounded by the health timeout."""
    statuses = await selector.check_health()
    healthy = sum(1 for s in statuses if s.is_healthy)
    if healthy == len(statuses):
        overall = "healthy"
    elif healthy:
        overall = "degraded"
    else:
        overall = "unhealthy"
    return {
        "success": True,
        "status": overall,
        "services": [s.model_dump(by_alias=True, mode="json") for s in statuses],
        "config": selector.get_config(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Azure AI Foundry (direct)
# ---------------------------------------------------------------------------

def _foundry(selector: ProviderSelector) -> AzureFoundryAgentProvider:
    provider = selector.get_provider(FOUNDRY)
    if not isinstance(provider, AzureFoundryAgentProvider):
        raise HTTPException(status_code=500, detail="Azure AI Foundry provider unavailable")
    return provider


@router.post("/foundry")
async def foundry_conversation(
    request: FoundryRequest,
    selector: ProviderSelector = Depends(get_selector),
) -> dict:
    """Send one message to the agent thread and return the whole thread."""
    provider = _foundry(selector)
    missing = provider.missing_configuration()
    if missing:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Azure AI Foundry not configured. Missing environment variables: "
                + ", ".join(missing),
                "missing": missing,
                "service": FOUNDRY,
                "configured": False,
            },
        )
    try:
        conversation = await asyncio.wait_for(
            provider.converse(request.message), timeout=selector.timeout_seconds
        )
    except asyncio.TimeoutError as e:
        reason = f"Operation timed out after {int(selector.timeout_seconds * 1000)}ms"
        logger.error("foundry_conversation_timeout", error=reason)
        raise HTTPException(status_code=500, detail=reason) from e
    except Exception as e:
        logger.error("foundry_conversation_error", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {
        "success": True,
        "conversation": [{"role": m.role, "text": m.text} for m in conversation],
        "service": FOUNDRY,
        "configured": True,
    }


@router.get("/foundry")
async def foundry_info(selector: ProviderSelector = Depends(get_selector)) -> dict:
    provider = _foundry(selector)
    configured = provider.is_configured()
    return {
        "service": "Azure AI Foundry API",
        "status": "configured" if configured else "not configured",
        "configured": configured,
        "missing": provider.missing_configuration(),
        "requiredEnvVars": ["AZURE_PROJECTS_ENDPOINT", "AZURE_AGENT_ID", "AZURE_THREAD_ID"],
        "endpoints": {"POST": "/api/ai/foundry - Run Azure AI Foundry agent conversation"},
    }


# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------

@router.get("/config")
async def get_ai_config(selector: ProviderSelector = Depends(get_selector)) -> dict:
    return {"success": True, "config": selector.get_config()}


@router.post("/config")
async def update_ai_config(
    update: AIConfigUpdate,
    selector: ProviderSelector = Depends(get_selector),
) -> dict:
    if update.primary_provider is not None:
        selector.set_primary_provider(update.primary_provider)
    if update.fallback_enabled is not None:
        selector.set_fallback_enabled(update.fallback_enabled)
    logger.info("ai_config_updated", **selector.get_config())
    return {"success": True, "config": selector.get_config()}
