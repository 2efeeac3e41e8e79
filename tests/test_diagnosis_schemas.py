"""Tests for diagnosis request/result schemas and provider output parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from truck_assistant.ai.schemas import DiagnosisRequest, DiagnosisResult
from truck_assistant.ai.validate import (
    DEFAULT_JSON_CONFIDENCE,
    PLAIN_TEXT_CONFIDENCE,
    parse_diagnosis,
    to_diagnosis,
)


def _request(**overrides) -> DiagnosisRequest:
    payload = {
        "truck": {"make": "Peterbilt", "model": "379", "year": 2005},
        "symptoms": ["Engine overheating"],
    }
    payload.update(overrides)
    return DiagnosisRequest.model_validate(payload)


# ---------------------------------------------------------------------------
# DiagnosisRequest
# ---------------------------------------------------------------------------

class TestDiagnosisRequest:

    def test_free_text_symptoms_split_into_lines(self):
        req = _request(symptoms="Loss of power\n\n  White smoke  \n")
        assert req.symptoms == ["Loss of power", "White smoke"]

    def test_blank_symptoms_rejected(self):
        with pytest.raises(ValidationError):
            _request(symptoms=["   ", ""])

    def test_truck_info_alias_accepted(self):
        req = DiagnosisRequest.model_validate(
            {"truckInfo": {"make": "Kenworth", "model": "T680"}, "symptoms": ["Noise"]}
        )
        assert req.truck.make == "Kenworth"
        assert req.truck.describe() == "Kenworth T680"

    def test_urgency_lowercased(self):
        assert _request(urgency="HIGH").urgency == "high"

    def test_unknown_urgency_rejected(self):
        with pytest.raises(ValidationError):
            _request(urgency="whenever")

    def test_missing_make_rejected(self):
        with pytest.raises(ValidationError):
            _request(truck={"model": "379"})


# ---------------------------------------------------------------------------
# DiagnosisResult normalisation
# ---------------------------------------------------------------------------

class TestDiagnosisResult:

    @pytest.mark.parametrize(
        "raw, expected",
        [(0.85, 85.0), ("72%", 72.0), (150, 100.0), (1, 100.0), (40, 40.0)],
    )
    def test_confidence_normalised(self, raw, expected):
        result = DiagnosisResult(diagnosis="Worn belt", confidence=raw)
        assert result.confidence == pytest.approx(expected)

    def test_negative_confidence_rejected(self):
        with pytest.raises(ValidationError):
            DiagnosisResult(diagnosis="Worn belt", confidence=-5)

    def test_single_string_lists_wrapped(self):
        result = DiagnosisResult(
            diagnosis="Worn belt", confidence=80, repairSteps="Replace belt"
        )
        assert result.repair_steps == ["Replace belt"]

    def test_critical_urgency_maps_to_high(self):
        result = DiagnosisResult(diagnosis="Brake failure", confidence=90, urgencyLevel="Critical")
        assert result.urgency_level == "high"

    def test_legacy_keys_mapped(self):
        result = DiagnosisResult.model_validate(
            {
                "possibleCauses": ["Thermostat stuck", "Low coolant"],
                "recommendations": ["Check coolant level"],
                "confidence": 0.6,
            }
        )
        assert result.diagnosis == "Thermostat stuck; Low coolant"
        assert result.repair_steps == ["Check coolant level"]

    def test_result_is_frozen(self):
        result = DiagnosisResult(diagnosis="Worn belt", confidence=80)
        with pytest.raises(ValidationError):
            result.confidence = 10

    def test_serialises_camel_case(self):
        dumped = DiagnosisResult(diagnosis="Worn belt", confidence=80).model_dump(by_alias=True)
        assert "repairSteps" in dumped
        assert dumped["estimatedCost"] == "Estimate not available"


# ---------------------------------------------------------------------------
# Parsing provider output
# ---------------------------------------------------------------------------

class TestParseDiagnosis:

    def test_fenced_json_parsed(self):
        text = '```json\n{"diagnosis": "Failed water pump", "confidence": 88}\n```'
        result = parse_diagnosis(text)
        assert result is not None
        assert result.diagnosis == "Failed water pump"
        assert result.confidence == 88

    def test_missing_confidence_defaults(self):
        result = parse_diagnosis('{"diagnosis": "Failed water pump"}')
        assert result.confidence == DEFAULT_JSON_CONFIDENCE

    def test_non_json_returns_none(self):
        assert parse_diagnosis("Check the radiator first.") is None

    def test_json_array_returns_none(self):
        assert parse_diagnosis('["not", "an", "object"]') is None

    def test_schema_mismatch_returns_none(self):
        assert parse_diagnosis('{"confidence": 50}') is None

    def test_plain_text_fallback(self):
        req = _request(urgency="high")
        result = to_diagnosis("Likely a clogged radiator.", req)
        assert result.diagnosis == "Likely a clogged radiator."
        assert result.confidence == PLAIN_TEXT_CONFIDENCE
        assert result.urgency_level == "high"
        assert len(result.repair_steps) == 1

    def test_empty_text_fallback_has_placeholder(self):
        result = to_diagnosis("", _request())
        assert result.diagnosis
