"""Tests for ReportSynthesizer.

A stub backend stands in for transformers so the model path, each degrade
reason and the safety gate can be exercised without downloads.
"""
import asyncio
from typing import List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from grounded.shared.models import (
    DegradeReason,
    EmergencyContact,
    GeneratedVia,
    Goal,
    LogEntry,
    Severity,
    ValueItem,
)
from grounded.services.llm_service import (
    GenerationOptions,
    ModelBackend,
    ModelCandidate,
    ModelKind,
    ModelOrchestrator,
    ModelSlot,
    OrchestratorConfig,
)
from grounded.services.report_service.config import ClinicianConfig
from grounded.services.report_service.formats import (
    NO_LOGS_MESSAGE,
    ON_DEVICE_DISCLAIMER,
    RULE_BASED_DISCLAIMER,
)
from grounded.services.report_service.synthesizer import (
    SAFETY_REPORT_HEADING,
    ReportSynthesizer,
)

COACH = ModelSlot.COUNSELING_COACH

MODEL_REPORT = (
    "# SOAP FORMAT REPORT\n"
    "## Subjective\n"
    "Client focused on health this week and described calm, steady moods. "
    "## Assessment\n"
    "Engagement with reflection practice is consistent and goal tracking is active."
)


class StubBackend(ModelBackend):

    def __init__(self, output: str = MODEL_REPORT):
        self.output = output
        self.load_error: Optional[BaseException] = None
        self.run_error: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.prompts: List[str] = []
        self.options: list = []

    async def load(self, candidate):
        if self.gate is not None:
            await self.gate.wait()
        if self.load_error is not None:
            raise self.load_error
        return object()

    async def run(self, handle, prompt, options):
        self.prompts.append(prompt)
        self.options.append(options)
        if self.run_error is not None:
            raise self.run_error
        return self.output

    async def clear_cache(self, model_ids: Sequence[str]):
        pass


def _orchestrator(backend: ModelBackend, coach_kind: ModelKind = ModelKind.GENERATOR) -> ModelOrchestrator:
    config = OrchestratorConfig(
        max_wait_seconds=0.05,
        candidate_timeout_seconds=5.0,
        candidates={
            COACH: (ModelCandidate("coach", coach_kind, "text2text-generation"),),
        },
    )
    return ModelOrchestrator(backend, config)


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def synthesizer(backend):
    return ReportSynthesizer(_orchestrator(backend))


@pytest.fixture
def good_day_logs():
    return [{"date": "2024-01-01", "valueId": "v1", "note": "felt good today", "mood": "✨"}]


@pytest.fixture
def values():
    return [ValueItem(id="v1", name="Health")]


class TestEmptyLogs:

    @pytest.mark.asyncio
    async def test_no_data_message_without_model(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        synthesizer = ReportSynthesizer(orchestrator)

        report = await synthesizer.synthesize([])

        assert report.text.startswith(NO_LOGS_MESSAGE)
        assert report.text.endswith(ON_DEVICE_DISCLAIMER)
        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.degraded.reason == DegradeReason.NO_LOGS
        assert orchestrator.method_calls == []


class TestSafetyGate:

    @pytest.mark.asyncio
    async def test_critical_logs_never_touch_orchestrator(self):
        orchestrator = MagicMock(spec=ModelOrchestrator)
        synthesizer = ReportSynthesizer(orchestrator)
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "i want to die"}]

        report = await synthesizer.synthesize(logs)

        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.detection.is_crisis
        assert report.detection.severity == Severity.CRITICAL
        assert report.degraded.reason == DegradeReason.SAFETY_GATE
        assert orchestrator.method_calls == []

    @pytest.mark.asyncio
    async def test_safety_report_framing(self, synthesizer, backend):
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "i want to die"}]

        report = await synthesizer.synthesize(logs)

        assert report.text.startswith(SAFETY_REPORT_HEADING)
        assert "988" in report.text
        assert "741741" in report.text
        assert "911" in report.text
        assert "SOAP FORMAT REPORT" not in report.text
        assert report.text.endswith(ON_DEVICE_DISCLAIMER)
        assert backend.prompts == []

    @pytest.mark.asyncio
    async def test_crisis_in_deep_reflection(self, synthesizer):
        logs = [
            {"date": "2024-01-01", "valueId": "v1", "note": "ok"},
            {"date": "2024-01-02", "valueId": "v1", "deepReflection": "I want to kill myself"},
        ]

        report = await synthesizer.synthesize(logs)

        assert report.text.startswith(SAFETY_REPORT_HEADING)

    @pytest.mark.asyncio
    async def test_contact_interpolated(self, synthesizer):
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "i want to die"}]
        contact = EmergencyContact(name="Dr. Rivera", phone="555-0100")

        report = await synthesizer.synthesize(logs, contact=contact)

        assert "Dr. Rivera: 555-0100" in report.text

    @pytest.mark.asyncio
    async def test_stored_contact_dict_accepted(self, synthesizer):
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "i want to die"}]

        report = await synthesizer.synthesize(
            logs, contact={"name": "Dr. Rivera", "phone": "555-0100"}
        )

        assert "Dr. Rivera: 555-0100" in report.text

    @pytest.mark.asyncio
    async def test_config_contact_used_by_default(self, backend):
        config = ClinicianConfig(emergency_contact=EmergencyContact(name="Sam", phone="555-0199"))
        synthesizer = ReportSynthesizer(_orchestrator(backend), config=config)
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "i want to die"}]

        report = await synthesizer.synthesize(logs)

        assert "Sam: 555-0199" in report.text

    @pytest.mark.asyncio
    async def test_clinician_phrases_do_not_trigger_gate(self, backend):
        config = ClinicianConfig(crisis_phrases=("felt good",))
        synthesizer = ReportSynthesizer(_orchestrator(backend), config=config)
        logs = [{"date": "2024-01-01", "valueId": "v1", "note": "felt good today"}]

        report = await synthesizer.synthesize(logs)

        assert not report.text.startswith(SAFETY_REPORT_HEADING)
        assert report.generated_via == GeneratedVia.MODEL


class TestModelPath:

    @pytest.mark.asyncio
    async def test_model_report(self, synthesizer, backend, good_day_logs, values):
        report = await synthesizer.synthesize(good_day_logs, values=values)

        assert report.generated_via == GeneratedVia.MODEL
        assert report.degraded is None
        assert "Client focused on health" in report.text
        assert report.text.endswith(ON_DEVICE_DISCLAIMER)
        assert report.diagnostics["model_id"] == "coach"

    @pytest.mark.asyncio
    async def test_prompt_and_options(self, synthesizer, backend, good_day_logs, values):
        await synthesizer.synthesize(good_day_logs, values=values)

        prompt = backend.prompts[0]
        assert "SOAP, DAP, and BIRP" in prompt
        assert "Value: Health" in prompt
        assert "✨: 1 entries" in prompt
        options = backend.options[0]
        assert isinstance(options, GenerationOptions)
        assert options.max_new_tokens == 2000
        assert options.temperature == 0.3
        assert options.repetition_penalty == 1.3

    @pytest.mark.asyncio
    async def test_accepts_dataclass_inputs(self, synthesizer):
        logs = [LogEntry(id="1", date="2024-01-01T09:30:00", value_id="v1", note="walked")]
        goals = [Goal(value_id="v1", text="Walk daily", completed=True)]

        report = await synthesizer.synthesize(logs, goals=goals)

        assert report.generated_via == GeneratedVia.MODEL


class TestFallback:

    @pytest.mark.asyncio
    async def test_model_unavailable(self, backend, good_day_logs, values):
        backend.load_error = RuntimeError("Unsupported model type")
        synthesizer = ReportSynthesizer(_orchestrator(backend))

        report = await synthesizer.synthesize(good_day_logs, values=values)

        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.degraded.reason == DegradeReason.MODEL_UNAVAILABLE
        assert "Health" in report.text
        assert "✨ (1)" in report.text
        assert RULE_BASED_DISCLAIMER in report.text
        assert report.text.endswith(ON_DEVICE_DISCLAIMER)
        for heading in ("# SOAP FORMAT REPORT", "# DAP FORMAT REPORT", "# BIRP FORMAT REPORT"):
            assert heading in report.text

    @pytest.mark.asyncio
    async def test_load_timeout(self, backend, good_day_logs):
        backend.gate = asyncio.Event()
        orchestrator = _orchestrator(backend)
        synthesizer = ReportSynthesizer(orchestrator)

        initial_load = asyncio.ensure_future(orchestrator.ensure_loaded(COACH))
        await asyncio.sleep(0)

        report = await synthesizer.synthesize(good_day_logs)

        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.degraded.reason == DegradeReason.LOAD_TIMEOUT

        backend.gate.set()
        assert await initial_load is True
        assert backend.prompts == []

    @pytest.mark.asyncio
    async def test_non_generator_handle(self, backend, good_day_logs):
        synthesizer = ReportSynthesizer(_orchestrator(backend, coach_kind=ModelKind.CLASSIFIER))

        report = await synthesizer.synthesize(good_day_logs)

        assert report.degraded.reason == DegradeReason.UNSUPPORTED_MODEL_KIND
        assert backend.prompts == []

    @pytest.mark.asyncio
    async def test_inference_error(self, backend, good_day_logs):
        backend.run_error = RuntimeError("CUDA out of memory")
        synthesizer = ReportSynthesizer(_orchestrator(backend))

        report = await synthesizer.synthesize(good_day_logs)

        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.degraded.reason == DegradeReason.INFERENCE_ERROR

    @pytest.mark.asyncio
    async def test_insufficient_output(self, good_day_logs):
        backend = StubBackend(output="ok")
        synthesizer = ReportSynthesizer(_orchestrator(backend))

        report = await synthesizer.synthesize(good_day_logs)

        assert report.degraded.reason == DegradeReason.INSUFFICIENT_OUTPUT
        assert "# SOAP FORMAT REPORT" in report.text

    @pytest.mark.asyncio
    async def test_unexpected_error(self, synthesizer, good_day_logs):
        synthesizer.prompt_builder = MagicMock()
        synthesizer.prompt_builder.build.side_effect = ValueError("bad aggregate")

        report = await synthesizer.synthesize(good_day_logs)

        assert report.generated_via == GeneratedVia.FALLBACK
        assert report.degraded.reason == DegradeReason.UNEXPECTED_ERROR

    @pytest.mark.asyncio
    async def test_single_log_without_text(self, backend):
        backend.load_error = RuntimeError("offline")
        synthesizer = ReportSynthesizer(_orchestrator(backend))

        report = await synthesizer.synthesize([{"date": "2024-03-05", "valueId": ""}])

        assert report.generated_via == GeneratedVia.FALLBACK
        assert "General" in report.text
        assert "Total entries: 1" in report.text


class TestReportDict:

    @pytest.mark.asyncio
    async def test_to_dict(self, synthesizer, good_day_logs):
        report = await synthesizer.synthesize(good_day_logs)

        data = report.to_dict()

        assert data["generated_via"] == "model"
        assert data["detection"]["is_crisis"] is False
        assert data["degraded"] is None
