"""Tests for diagnosis recording (app.diagnosis.persistence)."""

from __future__ import annotations

import pytest

from app.diagnosis.persistence import (
    CACHED_CONFIDENCE,
    GENERATED_CONFIDENCE,
    PLACEHOLDER_CAUSE,
    PLACEHOLDER_DIY,
    DiagnosticRecorder,
    build_record,
    clean_for_persistence,
)
from app.diagnosis.schemas import DiagnosisResult, Recommendations


def _result(**overrides) -> DiagnosisResult:
    fields = dict(
        error_code_meaning="E13 indicates a drainage fault.",
        possible_causes=["Blocked drain pump filter", "E13 drain timeout"],
        recommendations=Recommendations(
            diy=["Look up the error code in your manual"],
            professional=["Replace the drain pump"],
        ),
        urgency="medium",
        estimated_cost="£109-£149",
        difficulty="moderate",
        recommended_service="professional",
        service_reason="The pump needs testing by a qualified engineer.",
        skills_required=["Electrical testing"],
        time_estimate="1-2 hours",
        safety_warnings=["Unplug the machine first"],
        source_urls=["https://example.co.uk/bosch-e13"],
    )
    fields.update(overrides)
    return DiagnosisResult(**fields)


class TestCleanForPersistence:
    def test_untouched_when_code_detected(self):
        result = _result()
        assert clean_for_persistence(result, "E13") is result

    def test_code_language_removed_without_code(self):
        cleaned = clean_for_persistence(_result(), None)

        assert cleaned.error_code_meaning is None
        assert cleaned.possible_causes == ["Blocked drain pump filter"]
        assert cleaned.recommendations.diy == [PLACEHOLDER_DIY]
        assert cleaned.recommendations.professional == ["Replace the drain pump"]

    def test_emptied_causes_get_placeholder(self):
        cleaned = clean_for_persistence(
            _result(possible_causes=["Shows F05 on the display"]), None
        )
        assert cleaned.possible_causes == [PLACEHOLDER_CAUSE]


class TestBuildRecord:
    def test_columns(self, sanitized_request):
        record = build_record(sanitized_request, _result(), "E13", was_cached=False)

        assert record["email"] == "jane@example.com"
        assert record["appliance_type"] == "Washing Machine"
        assert record["error_code"] == "E13"
        assert record["diy_solutions"] == ["Look up the error code in your manual"]
        assert record["priority_level"] == "medium"
        assert record["recommended_action"] == "professional"
        assert record["estimated_time"] == "1-2 hours"
        assert record["source_urls"] == ["https://example.co.uk/bosch-e13"]
        assert record["confidence_score"] == GENERATED_CONFIDENCE

    def test_cached_confidence(self, sanitized_request):
        record = build_record(sanitized_request, _result(), "E13", was_cached=True)
        assert record["was_cached"] is True
        assert record["confidence_score"] == CACHED_CONFIDENCE


class TestDiagnosticRecorder:
    @pytest.mark.asyncio
    async def test_records_cleaned_result(self, fake_store_factory, sanitized_request):
        store = fake_store_factory()
        returned = await DiagnosticRecorder(store).record(
            sanitized_request, _result(), None, was_cached=False
        )

        assert len(store.inserted) == 1
        assert store.inserted[0]["error_code_meaning"] is None
        assert returned.error_code_meaning is None

    @pytest.mark.asyncio
    async def test_insert_failure_is_swallowed(self, fake_store_factory, sanitized_request):
        store = fake_store_factory(insert_error=RuntimeError("database is down"))
        result = _result()

        returned = await DiagnosticRecorder(store).record(
            sanitized_request, result, "E13", was_cached=False
        )
        assert returned == result
