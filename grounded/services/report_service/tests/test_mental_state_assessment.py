"""Tests for MentalStateAssessor."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from grounded.shared.models import LogEntry, Severity
from grounded.services.llm_service import (
    ClassificationOptions,
    InferenceError,
    InferenceFailureReason,
    ModelOrchestrator,
    ModelSlot,
)
from grounded.services.report_service.assessment import (
    CRISIS_ACTION,
    CRISIS_THEME,
    DEFAULT_ACTION,
    MentalStateAssessor,
    extract_themes,
)


def _logs(*notes):
    return [
        LogEntry(id=str(i), date=f"2024-01-{i + 1:02d}", value_id="v1", note=note)
        for i, note in enumerate(notes)
    ]


@pytest.fixture
def assessor():
    return MentalStateAssessor()


class TestCrisisShortCircuit:

    @pytest.mark.asyncio
    async def test_critical_reflection(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        assessor = MentalStateAssessor(orchestrator=orchestrator)

        result = await assessor.assess(_logs("fine"), "I want to die")

        assert result.anxiety_severity == Severity.HIGH
        assert result.depression_severity == Severity.HIGH
        assert result.key_themes == [CRISIS_THEME]
        assert result.recommended_actions == [CRISIS_ACTION]
        assert orchestrator.method_calls == []


class TestKeywordAssessment:

    @pytest.mark.asyncio
    async def test_empty_input_is_low(self, assessor):
        result = await assessor.assess([], "")

        assert result.anxiety_severity == Severity.LOW
        assert result.depression_severity == Severity.LOW
        assert result.key_themes == []

    @pytest.mark.asyncio
    async def test_moderate_anxiety(self, assessor):
        result = await assessor.assess(_logs("felt nervous before the meeting"), "")

        assert result.anxiety_severity == Severity.MODERATE
        assert result.depression_severity == Severity.LOW
        assert result.key_themes == ["anxiety"]
        assert "Practice deep breathing exercises" in result.recommended_actions

    @pytest.mark.asyncio
    async def test_intensifier_raises_to_high(self, assessor):
        result = await assessor.assess([], "I was very sad and tired all week")

        assert result.depression_severity == Severity.HIGH
        assert "Reach out to your support network" in result.recommended_actions

    @pytest.mark.asyncio
    async def test_growth_action(self, assessor):
        result = await assessor.assess(_logs("I learned to pause"), "grateful for my sister")

        assert result.key_themes == ["gratitude", "growth"]
        assert result.recommended_actions == ["Acknowledge your progress and celebrate small wins"]

    @pytest.mark.asyncio
    async def test_only_recent_logs_considered(self, assessor):
        logs = _logs(*(["calm day"] * 10 + ["angry at everyone"]))

        result = await assessor.assess(logs, "")

        assert "anger" not in result.key_themes

    def test_extract_themes(self):
        assert extract_themes("Frustrated but thankful") == ["anger", "gratitude"]


class TestMoodClassifier:

    @pytest.mark.asyncio
    async def test_label_attached(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        orchestrator.ensure_loaded = AsyncMock(return_value=True)
        orchestrator.invoke = AsyncMock(return_value="POSITIVE")
        assessor = MentalStateAssessor(orchestrator=orchestrator)

        result = await assessor.assess(_logs("grateful today"), "")

        assert result.model_label == "POSITIVE"
        orchestrator.ensure_loaded.assert_awaited_once_with(ModelSlot.MOOD_TRACKER)
        args = orchestrator.invoke.await_args.args
        assert args[0] == ModelSlot.MOOD_TRACKER
        assert isinstance(args[2], ClassificationOptions)

    @pytest.mark.asyncio
    async def test_unavailable_model_degrades(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        orchestrator.ensure_loaded = AsyncMock(return_value=False)
        orchestrator.invoke = AsyncMock()
        assessor = MentalStateAssessor(orchestrator=orchestrator)

        result = await assessor.assess(_logs("grateful today"), "")

        assert result.model_label is None
        assert result.key_themes == ["gratitude"]
        orchestrator.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inference_error_degrades(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        orchestrator.ensure_loaded = AsyncMock(return_value=True)
        orchestrator.invoke = AsyncMock(
            side_effect=InferenceError(InferenceFailureReason.NETWORK, "offline")
        )
        assessor = MentalStateAssessor(orchestrator=orchestrator)

        result = await assessor.assess(_logs("grateful today"), "")

        assert result.model_label is None
        assert result.key_themes == ["gratitude"]


class TestFailureDefaults:

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_safe_defaults(self, assessor):
        with patch(
            "grounded.services.report_service.assessment.extract_themes",
            side_effect=RuntimeError("boom"),
        ):
            result = await assessor.assess(_logs("worried"), "")

        assert result.anxiety_severity == Severity.LOW
        assert result.recommended_actions == [DEFAULT_ACTION]
