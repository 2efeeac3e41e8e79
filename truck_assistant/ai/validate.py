"""Parsing and validation of provider diagnosis output."""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError

from truck_assistant.ai.schemas import DiagnosisRequest, DiagnosisResult

logger = structlog.get_logger()

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

PLAIN_TEXT_CONFIDENCE = 60.0
DEFAULT_JSON_CONFIDENCE = 70.0


def parse_diagnosis(raw_text: str) -> Optional[DiagnosisResult]:
    """
    Parse and validate the raw text returned by a provider.

    Handles:
    - Markdown code block stripping
    - JSON parsing
    - Pydantic schema validation

    Returns None when the text is not a usable diagnosis.
    """
    clean_text = (raw_text or "").strip()

    match = _FENCE_PATTERN.search(clean_text)
    if match:
        clean_text = match.group(1)

    try:
        data = json.loads(clean_text)
    except json.JSONDecodeError as e:
        logger.info("diagnosis_output_not_json", error=str(e))
        return None

    if not isinstance(data, dict):
        logger.info("diagnosis_output_not_object", kind=type(data).__name__)
        return None

    data.setdefault("confidence", DEFAULT_JSON_CONFIDENCE)
    try:
        return DiagnosisResult.model_validate(data)
    except ValidationError as e:
        logger.info("diagnosis_output_schema_mismatch", errors=e.error_count())
        return None


def plain_text_diagnosis(text: str, request: DiagnosisRequest) -> DiagnosisResult:
    """Wrap free-form provider text into a result with reduced confidence."""
    return DiagnosisResult(
        diagnosis=text.strip() or "No diagnosis text was returned.",
        confidence=PLAIN_TEXT_CONFIDENCE,
        repair_steps=[
            "Please consult a professional technician for detailed analysis"
        ],
        urgency_level=request.urgency,
    )


def to_diagnosis(raw_text: str, request: DiagnosisRequest) -> DiagnosisResult:
    """Structured result when possible, plain-text fallback otherwise."""
    result = parse_diagnosis(raw_text)
    if result is not None:
        return result
    return plain_text_diagnosis(raw_text or "", request)
